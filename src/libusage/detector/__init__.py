from .aggregator import ByClassAggregator, ResultAggregator, UniqueSetAggregator, make_aggregator
from .archive import ArchiveReadError, iter_class_entries
from .config import DetectorConfig
from .diagnostics import Diagnostics
from .findings import ArchiveOutcome, Failure, MatchResult
from .scanner import PackageMatchScanner
from .tools import FieldAccessTool, PackageCallTool
