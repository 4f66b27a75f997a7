from .dag import Graph
from .dispatch import Dispatch
from .dsl import load_graph
from .errors import ArgumentError, ConfigurationError, DefinitionError, InvariantError, JobdagError
from .model import Callable, Command, Job, JobState, Outcome
from .pool import Pool
from .slots import Slots
from .stats import Stats

__all__ = [
    "Graph", "Dispatch", "load_graph", "Pool", "Slots", "Stats",
    "Job", "JobState", "Outcome", "Command", "Callable",
    "JobdagError", "DefinitionError", "ArgumentError", "ConfigurationError", "InvariantError",
]
