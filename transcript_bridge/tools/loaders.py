"""
Tool source loaders

A loader turns one file into a mapping of export name -> value; the registry
decides which exports are tool definitions.

- PythonToolLoader: ``*.py`` files, byte-compiled into an on-disk cache keyed
  by sha256 of the absolute path and modification time, so unchanged files
  are not recompiled across registry instances.
- YamlToolLoader: ``*.yaml``/``*.yml`` definitions whose ``execute`` names a
  ``module:function`` to import.

YAML schema (per file, or a list under ``tools:``):

name: count_lines
description: Count lines in a file
execute: my_pkg.tools:count_lines
parameters:            # JSON Schema, or the short list form below
  - name: path
    type: string
    description: File to inspect
    required: true
"""

from __future__ import annotations

import hashlib
import importlib
import importlib.machinery
import importlib.util
import logging
import os
import py_compile
import sys
import tempfile
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml

from ..error_handling import ToolLoadError


logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = os.path.join(tempfile.gettempdir(), "transcript-bridge-tools-cache")
CACHE_SUFFIX = ".pyc"


class ToolModuleLoader(ABC):
    """Loads the exports of one tool source file."""

    suffixes: Tuple[str, ...] = ()

    def supports(self, path: str) -> bool:
        name = os.path.basename(path)
        return not name.startswith("_") and name.endswith(self.suffixes)

    @abstractmethod
    def load(self, path: str) -> Dict[str, Any]:
        """Return the file's exports; raise on any failure."""

    def clear_cache(self) -> None:
        pass


# ---------------------------------------------------------------------------
# Python sources
# ---------------------------------------------------------------------------


def cache_key(path: str) -> str:
    absolute = os.path.abspath(path)
    return f"{absolute}:{os.stat(absolute).st_mtime}"


class PythonToolLoader(ToolModuleLoader):
    suffixes = (".py",)

    def __init__(self, cache_dir: Optional[str] = None) -> None:
        self.cache_dir = cache_dir or DEFAULT_CACHE_DIR
        # absolute path -> (cache key, bytecode path) of the newest compile
        self._compiled: Dict[str, Tuple[str, str]] = {}
        # absolute path -> name of the module currently in sys.modules
        self._modules: Dict[str, str] = {}
        self._lock = threading.Lock()

    def _compiled_path(self, path: str) -> Tuple[str, str]:
        key = cache_key(path)
        # bytecode is interpreter specific
        digest = hashlib.sha256(f"{key}:{importlib.util.MAGIC_NUMBER.hex()}".encode("utf-8")).hexdigest()[:16]
        return key, os.path.join(self.cache_dir, digest + CACHE_SUFFIX)

    def compile(self, path: str) -> str:
        """Return the cached bytecode path for ``path``, compiling if needed.

        A recompile after the source changed removes the stale bytecode file.
        """
        absolute = os.path.abspath(path)
        key, target = self._compiled_path(path)
        with self._lock:
            previous = self._compiled.get(absolute)
            if previous and previous[0] == key and os.path.exists(previous[1]):
                return previous[1]
            if not os.path.exists(target):
                os.makedirs(self.cache_dir, exist_ok=True)
                try:
                    py_compile.compile(absolute, cfile=target, doraise=True)
                except py_compile.PyCompileError as exc:
                    raise ToolLoadError(path, exc.msg) from exc
            if previous and previous[1] != target:
                try:
                    os.remove(previous[1])
                except OSError as exc:
                    logger.debug("could not remove stale bytecode %s: %s", previous[1], exc)
            self._compiled[absolute] = (key, target)
            return target

    def load(self, path: str) -> Dict[str, Any]:
        absolute = os.path.abspath(path)
        compiled = self.compile(path)
        module_name = "transcript_bridge_tool_" + os.path.splitext(os.path.basename(compiled))[0]
        loader = importlib.machinery.SourcelessFileLoader(module_name, compiled)
        spec = importlib.util.spec_from_loader(module_name, loader, origin=absolute)
        if spec is None:
            raise ToolLoadError(path, "could not create module spec")
        module = importlib.util.module_from_spec(spec)
        module.__file__ = absolute
        with self._lock:
            stale = self._modules.pop(absolute, None)
            if stale and stale != module_name:
                sys.modules.pop(stale, None)
        sys.modules[module_name] = module
        try:
            loader.exec_module(module)
        except BaseException:
            sys.modules.pop(module_name, None)
            raise
        with self._lock:
            self._modules[absolute] = module_name
        return {k: v for k, v in vars(module).items() if not k.startswith("_")}

    def clear_cache(self) -> None:
        with self._lock:
            self._compiled.clear()
            if not os.path.isdir(self.cache_dir):
                return
            for fname in os.listdir(self.cache_dir):
                if not fname.endswith(CACHE_SUFFIX):
                    continue
                try:
                    os.remove(os.path.join(self.cache_dir, fname))
                except OSError as exc:
                    logger.error("clear_cache failed to remove %s: %s", fname, exc)


# ---------------------------------------------------------------------------
# YAML definitions
# ---------------------------------------------------------------------------

_TYPE_MAP = {
    None: "string",
    "string": "string",
    "str": "string",
    "integer": "integer",
    "int": "integer",
    "number": "number",
    "float": "number",
    "boolean": "boolean",
    "bool": "boolean",
    "array": "array",
    "object": "object",
}


def params_list_to_schema(params: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    """Convert the short ``[{name, type, description, required}]`` form to JSON Schema."""
    properties: Dict[str, Any] = {}
    required: List[str] = []
    for p in params or []:
        prop: Dict[str, Any] = {"type": _TYPE_MAP.get(p.get("type"), "string")}
        if p.get("description"):
            prop["description"] = p["description"]
        if prop["type"] == "array":
            prop["items"] = {"type": _TYPE_MAP.get(p.get("items"), "string")}
        if p.get("default") is not None:
            prop["default"] = p["default"]
        if p.get("enum"):
            prop["enum"] = list(p["enum"])
        properties[p.get("name")] = prop
        if p.get("required", False):
            required.append(p.get("name"))
    return {"type": "object", "properties": properties, "required": required}


def resolve_callable(reference: Any, path: str) -> Any:
    if callable(reference) or reference is None:
        return reference
    module_name, sep, attr = str(reference).partition(":")
    if not sep or not module_name or not attr:
        raise ToolLoadError(path, f"execute must look like 'module:function', got {reference!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ToolLoadError(path, f"cannot import {module_name}: {exc}") from exc
    target: Any = module
    for part in attr.split("."):
        target = getattr(target, part, None)
        if target is None:
            raise ToolLoadError(path, f"{module_name} has no attribute {attr}")
    return target


class YamlToolLoader(ToolModuleLoader):
    suffixes = (".yaml", ".yml")

    def load(self, path: str) -> Dict[str, Any]:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        entries = data.get("tools") if isinstance(data, dict) and "tools" in data else data
        if isinstance(entries, dict):
            entries = [entries]
        if not isinstance(entries, list):
            raise ToolLoadError(path, "expected a mapping or a list of tool mappings")

        exports: Dict[str, Any] = {}
        for i, entry in enumerate(entries):
            if not isinstance(entry, dict):
                raise ToolLoadError(path, f"tool entry {i} is not a mapping")
            tool = dict(entry)
            if isinstance(tool.get("parameters"), list):
                tool["parameters"] = params_list_to_schema(tool["parameters"])
            tool["execute"] = resolve_callable(tool.get("execute"), path)
            exports[str(tool.get("name") or f"tool_{i}")] = tool
        return exports


class CompositeToolLoader(ToolModuleLoader):
    """Dispatches to the first child loader that supports the file."""

    def __init__(self, loaders: Sequence[ToolModuleLoader]) -> None:
        self.loaders = list(loaders)
        self.suffixes = tuple(s for loader in self.loaders for s in loader.suffixes)

    def supports(self, path: str) -> bool:
        return any(loader.supports(path) for loader in self.loaders)

    def load(self, path: str) -> Dict[str, Any]:
        for loader in self.loaders:
            if loader.supports(path):
                return loader.load(path)
        raise ToolLoadError(path, "no loader for this file type")

    def clear_cache(self) -> None:
        for loader in self.loaders:
            loader.clear_cache()


def default_loader(cache_dir: Optional[str] = None) -> CompositeToolLoader:
    return CompositeToolLoader([PythonToolLoader(cache_dir), YamlToolLoader()])
