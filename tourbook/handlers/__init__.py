from .base import DocumentQueryHandlerBase
from .project import ProjectHandler
from .sort import SortHandler
from .filter import FilterHandler
from .limit import LimitHandler
from .populate import PopulateHandler
