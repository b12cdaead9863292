"""
Hot-reloadable component registry.

A :class:`ComponentRegistry` executes Python files from disk, instantiates the
component classes they declare and keeps the instances keyed by name. Files
list their components in a module-level ``COMPONENTS`` sequence::

    class Ping(Command):
        ...

    COMPONENTS = [Ping]

Each entry must be a subclass of the registry's base type; anything else is
logged and skipped. Modules without ``COMPONENTS`` fall back to every base-type
subclass they define themselves.

Loading never raises. A file that fails to execute or instantiate is logged and
counts as zero components, the same as a file with nothing in it. Deleted files
are not noticed and their components stay registered.

Listeners subscribe with :meth:`ComponentRegistry.on`:

``load(component)``
    A name was registered for the first time.
``reload(new, old)``
    A name was registered again; ``old`` is the instance that was replaced.
``observe_changes(display_path)``
    A watched file changed and reloading it produced at least one component.

The mapping has no lock. It expects one writer (discovery and reload) and any
number of readers; two concurrent loads of the same name simply leave the later
one in place.
"""

from __future__ import annotations

import asyncio
import hashlib
import importlib.machinery
import importlib.util
import inspect
import logging
import os
import sys
import types
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Set, Tuple, Type, TypeVar

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEBOUNCE_WINDOW = 0.5
DESCRIPTOR_ATTR = "COMPONENTS"
EVENTS = ("load", "reload", "observe_changes")

_WATCHED_EVENT_TYPES = frozenset({EVENT_TYPE_CREATED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED})
_SKIPPED_DIRS = frozenset({"__pycache__"})
_OBSERVER_JOIN_TIMEOUT = 2.0


def _module_name(path: Path) -> str:
    digest = hashlib.sha1(str(path).encode("utf-8")).hexdigest()[:12]
    stem = "".join(ch if ch.isalnum() else "_" for ch in path.stem)
    return f"_karma_component_{stem}_{digest}"


class _SourceLoader(importlib.machinery.SourceFileLoader):
    """Source loader that never reads or writes cached bytecode."""

    def get_code(self, fullname: str) -> types.CodeType:
        # A pyc written within the same mtime tick as an edit would hide it.
        return self.source_to_code(self.get_data(self.path), self.path)


def _execute(path: Path) -> types.ModuleType:
    """Import ``path`` as a brand-new module and return it."""

    name = _module_name(path)
    spec = importlib.util.spec_from_file_location(name, path, loader=_SourceLoader(name, str(path)))
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot build an import spec for {path}")

    module = importlib.util.module_from_spec(spec)
    previous = sys.modules.get(name)
    sys.modules[name] = module
    try:
        spec.loader.exec_module(module)
    except Exception:
        if previous is None:
            sys.modules.pop(name, None)
        else:
            sys.modules[name] = previous
        raise
    return module


def _scan(root: Path) -> List[Tuple[Path, bool]]:
    """List ``root``'s entries as ``(path, is_dir)``, files and dirs only."""

    entries = []
    for child in sorted(root.iterdir()):
        if child.is_dir():
            entries.append((child, True))
        elif child.is_file():
            entries.append((child, False))
    return entries


class _Subscription(FileSystemEventHandler):
    """One watched root: watchdog callbacks feed a debounced reload task."""

    def __init__(self, registry: "ComponentRegistry[Any]", root: Path, loop: asyncio.AbstractEventLoop) -> None:
        super().__init__()
        self.registry = registry
        self.root = root
        self.loop = loop
        self.queue: asyncio.Queue[Tuple[str, float]] = asyncio.Queue()
        self.accepted_at: float | None = None
        self.task: asyncio.Task | None = None

    # Runs on the watchdog observer thread.
    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _WATCHED_EVENT_TYPES:
            return
        changed = getattr(event, "dest_path", "") or event.src_path
        try:
            self.loop.call_soon_threadsafe(self._enqueue, os.fsdecode(changed))
        except RuntimeError:
            logger.debug("Event loop closed; dropping change to %s", changed)

    def _enqueue(self, changed: str) -> None:
        self.queue.put_nowait((changed, self.loop.time()))

    def accept(self, at: float) -> bool:
        """Open a debounce window at ``at`` unless one is still open."""

        if self.accepted_at is not None and at - self.accepted_at < DEBOUNCE_WINDOW:
            return False
        self.accepted_at = at
        return True

    def display_path(self, changed: str) -> str:
        try:
            relative = Path(changed).relative_to(self.root)
        except ValueError:
            relative = Path(Path(changed).name)
        return os.path.join(self.root.name, str(relative))

    async def consume(self) -> None:
        while True:
            changed, at = await self.queue.get()
            if not self.accept(at):
                continue
            if await self.registry.load_file(changed) > 0:
                display = self.display_path(changed)
                logger.info("Reloaded %s", display)
                self.registry.emit("observe_changes", display)


class ComponentRegistry(Generic[T]):
    """Name-keyed store of components discovered on disk."""

    def __init__(
        self,
        base_type: Type[T],
        name_of: Callable[[T], str],
        *,
        observer_factory: Callable[[], Any] = Observer,
    ) -> None:
        self.base_type = base_type
        self.name_of = name_of
        self._components: Dict[str, T] = {}
        self._listeners: Dict[str, List[Callable[..., Any]]] = {event: [] for event in EVENTS}
        self._observer_factory = observer_factory
        self._observer: Any = None
        self._subscriptions: List[_Subscription] = []
        self._tasks: Set[asyncio.Future] = set()

    # ------------------------------------------------------------------ #
    # Lookup
    # ------------------------------------------------------------------ #

    def get(self, name: str) -> T | None:
        return self._components.get(name)

    def has(self, name: str) -> bool:
        return name in self._components

    def get_all(self) -> List[T]:
        return list(self._components.values())

    def __contains__(self, name: object) -> bool:
        return name in self._components

    def __len__(self) -> int:
        return len(self._components)

    # ------------------------------------------------------------------ #
    # Events
    # ------------------------------------------------------------------ #

    def on(self, event: str, listener: Callable[..., Any]) -> Callable[..., Any]:
        """Subscribe ``listener`` to ``event``. Coroutine functions are allowed."""

        if event not in self._listeners:
            raise ValueError(f"Unknown registry event '{event}'")
        self._listeners[event].append(listener)
        return listener

    def off(self, event: str, listener: Callable[..., Any]) -> None:
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def emit(self, event: str, *args: Any) -> None:
        for listener in list(self._listeners[event]):
            try:
                result = listener(*args)
            except Exception:
                logger.exception("Registry '%s' listener %r failed", event, listener)
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._listener_done)

    def _listener_done(self, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Registry listener task failed", exc_info=exc)

    # ------------------------------------------------------------------ #
    # Loading
    # ------------------------------------------------------------------ #

    def _is_component_class(self, value: Any) -> bool:
        return inspect.isclass(value) and issubclass(value, self.base_type) and value is not self.base_type

    def _entries(self, module: types.ModuleType, path: Path) -> List[type]:
        """Return the component classes ``module`` makes available."""

        declared = getattr(module, DESCRIPTOR_ATTR, None)
        if declared is None:
            found: List[type] = []
            for value in vars(module).values():
                if (
                    self._is_component_class(value)
                    and value.__module__ == module.__name__
                    and value not in found
                ):
                    found.append(value)
            return found

        if not isinstance(declared, (list, tuple)):
            logger.warning(
                "%s: %s must be a list of classes, got %s",
                path,
                DESCRIPTOR_ATTR,
                type(declared).__name__,
            )
            return []

        entries: List[type] = []
        for entry in declared:
            if self._is_component_class(entry):
                entries.append(entry)
            else:
                logger.warning(
                    "%s: skipping %r in %s; expected a %s subclass",
                    path,
                    entry,
                    DESCRIPTOR_ATTR,
                    self.base_type.__name__,
                )
        return entries

    def _store(self, name: str, component: T) -> None:
        old = self._components.get(name)
        self._components[name] = component
        if old is None:
            logger.debug("Loaded component '%s'", name)
            self.emit("load", component)
        else:
            logger.debug("Reloaded component '%s'", name)
            self.emit("reload", component, old)

    async def load_file(self, path: str | os.PathLike[str]) -> int:
        """
        Load every component declared by the Python file at ``path``.

        Returns the number of components stored, or 0 when the file is not a
        Python source file, has nothing to load, or fails to load.
        """

        target = Path(path)
        if target.suffix != ".py":
            return 0

        try:
            if not await asyncio.to_thread(target.is_file):
                return 0
            module = await asyncio.to_thread(_execute, target)
            loaded = []
            for cls in self._entries(module, target):
                component = cls()
                loaded.append((self.name_of(component), component))
        except Exception:
            logger.exception("Failed to load components from %s", target)
            return 0

        for name, component in loaded:
            self._store(name, component)
        return len(loaded)

    async def load_directory(self, path: str | os.PathLike[str], watch: bool = False) -> int:
        """
        Load every file under ``path``, depth first.

        With ``watch`` set, one watcher covering the whole tree is installed
        once loading finishes.
        """

        root = Path(path)
        count = 0
        try:
            children = await asyncio.to_thread(_scan, root)
        except OSError as exc:
            logger.warning("Cannot read directory %s: %s", root, exc)
            children = []

        for child, is_dir in children:
            if is_dir:
                if child.name in _SKIPPED_DIRS or child.name.startswith("."):
                    continue
                count += await self.load_directory(child)
            else:
                count += await self.load_file(child)

        if watch:
            self.add_watcher(root)
        return count

    # ------------------------------------------------------------------ #
    # Watching
    # ------------------------------------------------------------------ #

    def _observer_handle(self) -> Any:
        if self._observer is None:
            observer = self._observer_factory()
            observer.daemon = True
            observer.start()
            self._observer = observer
        return self._observer

    def add_watcher(self, path: str | os.PathLike[str]) -> None:
        """
        Reload files under ``path`` as they change.

        Must be called from a running event loop. Changes arriving less than
        ``DEBOUNCE_WINDOW`` seconds after the last accepted change for the same
        watcher are dropped.
        """

        root = Path(path).resolve()
        loop = asyncio.get_running_loop()
        subscription = _Subscription(self, root, loop)
        try:
            self._observer_handle().schedule(subscription, str(root), recursive=True)
        except OSError:
            logger.exception("Cannot watch %s", root)
            return

        subscription.task = loop.create_task(subscription.consume())
        self._subscriptions.append(subscription)
        logger.info("Watching %s for changes", root)

    def clear_watchers(self) -> None:
        """
        Stop every watcher this registry started.

        Safe to call with or without a running event loop. Inside a loop the
        observer thread is joined from the default executor instead of
        blocking the loop.
        """

        observer, self._observer = self._observer, None
        if observer is not None:
            observer.unschedule_all()
            observer.stop()
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                observer.join(timeout=_OBSERVER_JOIN_TIMEOUT)
            else:
                loop.run_in_executor(None, observer.join, _OBSERVER_JOIN_TIMEOUT)

        for subscription in self._subscriptions:
            if subscription.task is not None:
                subscription.task.cancel()
        self._subscriptions.clear()


__all__ = ["ComponentRegistry", "DEBOUNCE_WINDOW", "DESCRIPTOR_ATTR", "EVENTS"]
