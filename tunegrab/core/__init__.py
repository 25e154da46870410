from .command import registry, resolve, set_tool_path
from .jobs import JobRunner
from .models import Song
from .origin import Origin, classify

__all__ = ["JobRunner", "Origin", "Song", "classify", "registry", "resolve", "set_tool_path"]
