"""
Name-keyed registry of user-defined tools.

Directories are independent failure domains: a file that fails to load or
validate is reported in ``LoadResult.failed`` and the batch continues.
Directories are processed in order, so a tool defined in a later directory
replaces one of the same name from an earlier directory.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .definition import ToolDefinition, coerce_tool_definition, looks_like_tool
from .loaders import ToolModuleLoader, default_loader
from .serialize import SerializedTool, serialize_tool


logger = logging.getLogger(__name__)


@dataclass
class LoadFailure:
    file: str
    error: str


@dataclass
class LoadResult:
    loaded: List[str] = field(default_factory=list)
    failed: List[LoadFailure] = field(default_factory=list)

    def extend(self, other: "LoadResult") -> None:
        self.loaded.extend(other.loaded)
        self.failed.extend(other.failed)


class ToolRegistry:
    def __init__(self, loader: Optional[ToolModuleLoader] = None, cache_dir: Optional[str] = None) -> None:
        self.loader = loader or default_loader(cache_dir)
        self._tools: Dict[str, ToolDefinition] = {}
        self._last_loaded: Dict[str, float] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _load_file(self, path: str) -> List[ToolDefinition]:
        exports = self.loader.load(path)
        found: List[ToolDefinition] = []
        for export_name, value in exports.items():
            if not looks_like_tool(value):
                continue
            definition = coerce_tool_definition(export_name, value)
            found.append(replace(definition, source=path))
        return found

    def load_from_directory(self, tool_dir: str) -> LoadResult:
        result = LoadResult()
        if not os.path.isdir(tool_dir):
            return result

        try:
            names = sorted(os.listdir(tool_dir))
        except OSError as exc:
            logger.error("load_from_directory(%s) failed: %s", tool_dir, exc)
            return result

        for fname in names:
            path = os.path.join(tool_dir, fname)
            if not os.path.isfile(path) or not self.loader.supports(path):
                continue
            logger.info("importing tools from %s", path)
            try:
                definitions = self._load_file(path)
            except Exception as exc:  # user code may raise anything on import
                logger.error("loading %s failed: %s", path, exc)
                result.failed.append(LoadFailure(file=fname, error=str(exc)))
                continue
            with self._lock:
                for definition in definitions:
                    self._tools[definition.name] = definition
                    result.loaded.append(definition.name)
            for definition in definitions:
                logger.info("loaded tool %s from %s", definition.name, path)
        return result

    def load_from_directory_if_stale(self, tool_dir: str) -> LoadResult:
        """Rescan ``tool_dir`` only when its mtime advanced since the last scan."""
        if not os.path.isdir(tool_dir):
            return LoadResult()

        key = os.path.abspath(tool_dir)
        mtime = os.stat(tool_dir).st_mtime
        with self._lock:
            last = self._last_loaded.get(key)
            stale = last is None or mtime > last
            if stale:
                self._last_loaded[key] = mtime
        if stale:
            return self.load_from_directory(tool_dir)
        return LoadResult(loaded=self.list())

    def load_from_directories(self, tool_dirs: Iterable[str]) -> LoadResult:
        result = LoadResult()
        for tool_dir in tool_dirs:
            result.extend(self.load_from_directory(tool_dir))
        return result

    def load_from_directories_if_stale(self, tool_dirs: Iterable[str]) -> LoadResult:
        result = LoadResult()
        for tool_dir in tool_dirs:
            result.extend(self.load_from_directory_if_stale(tool_dir))
        return result

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def register(self, definition: Any, source: Optional[str] = None) -> ToolDefinition:
        """Validate and store ``definition``, replacing any tool of the same name.

        Raises ToolDefinitionError listing every invalid field.
        """
        if isinstance(definition, Mapping):
            label = definition.get("name")
        else:
            label = getattr(definition, "name", None)
        stored = coerce_tool_definition(str(label), definition)
        if source:
            stored = replace(stored, source=source)
        with self._lock:
            self._tools[stored.name] = stored
        return stored

    def unregister(self, name: str) -> bool:
        with self._lock:
            return self._tools.pop(name, None) is not None

    def get(self, name: str) -> Optional[ToolDefinition]:
        with self._lock:
            return self._tools.get(name)

    def has(self, name: str) -> bool:
        with self._lock:
            return name in self._tools

    def list(self) -> List[str]:
        with self._lock:
            return list(self._tools.keys())

    def get_all(self) -> List[ToolDefinition]:
        with self._lock:
            return list(self._tools.values())

    def get_all_serialized(self) -> List[SerializedTool]:
        return [serialize_tool(d) for d in self.get_all()]

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._tools)

    def clear(self) -> None:
        with self._lock:
            self._tools.clear()

    def clear_cache(self) -> None:
        self.loader.clear_cache()
