"""
Source Controller - Work queue driving the GCSSource reconciler.

Similar to a Kubernetes controller: watch events put keys on a queue and
a fixed pool of workers hands them to the reconciler. A key is never
processed by two workers at once; a key that changes while it is being
processed is queued again once the current pass finishes, and a key whose
pass failed is redriven after a delay.
"""

import asyncio
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Set

from kubernetes import client, watch

from config import ControllerConfig
from constants import (
    GCS_SOURCE_GROUP,
    GCS_SOURCE_KIND,
    GCS_SOURCE_PLURAL,
    GCS_SOURCE_VERSION,
    RELAY_GROUP,
    RELAY_PLURAL,
    RELAY_VERSION,
)
from models import GCSSource
from reconciler import Reconciler
from scheme import Scheme
from store import SourceCache

logger = logging.getLogger(__name__)

EventHandler = Callable[[str, Dict[str, Any]], None]


def object_key(obj: Dict[str, Any]) -> str:
    """Work queue key (namespace/name) of an API object."""
    metadata = obj.get("metadata") or {}
    return f"{metadata.get('namespace', 'default')}/{metadata.get('name', '')}"


def controller_of(obj: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Return the controlling owner reference of an object, if any."""
    for ref in (obj.get("metadata") or {}).get("ownerReferences") or []:
        if ref.get("controller"):
            return ref
    return None


class Controller:
    """
    Drives the reconciler from a work queue fed by watch events.
    """

    def __init__(
        self,
        reconciler: Reconciler,
        cache: SourceCache,
        scheme: Scheme,
        api: client.CustomObjectsApi,
        config: Optional[ControllerConfig] = None,
        namespace: str = "",
    ):
        self.reconciler = reconciler
        self.cache = cache
        self.scheme = scheme
        self.api = api
        self.config = config or ControllerConfig()
        self.max_concurrent_reconciles = self.config.max_concurrent_reconciles
        self.requeue_delay = self.config.requeue_delay
        self.namespace = namespace
        self.running = False

        self.queue: asyncio.Queue = asyncio.Queue()
        # Keys waiting in the queue, keys being reconciled, and keys that
        # changed while being reconciled
        self._queued: Set[str] = set()
        self._processing: Set[str] = set()
        self._dirty: Set[str] = set()
        self._timers: Set[asyncio.TimerHandle] = set()

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._shutdown_event = threading.Event()
        self._workers: List[asyncio.Task] = []
        self._watchers: List[threading.Thread] = []

    # Queue operations

    def enqueue(self, key: str) -> None:
        """Add a key to the queue unless it is already waiting."""
        if key in self._processing:
            self._dirty.add(key)
            return
        if key in self._queued:
            return
        self._queued.add(key)
        self.queue.put_nowait(key)

    def enqueue_after(self, key: str, delay: float) -> None:
        """Add a key to the queue after delay seconds."""
        loop = self._loop or asyncio.get_running_loop()
        handle: Optional[asyncio.TimerHandle] = None

        def fire() -> None:
            self._timers.discard(handle)
            self.enqueue(key)

        handle = loop.call_later(delay, fire)
        self._timers.add(handle)

    def enqueue_controller_of(self, obj: Dict[str, Any]) -> None:
        """Enqueue the GCSSource controlling obj, if one does."""
        ref = controller_of(obj)
        if ref is None or ref.get("kind") != GCS_SOURCE_KIND:
            return
        namespace = (obj.get("metadata") or {}).get("namespace", "default")
        self.enqueue(f"{namespace}/{ref['name']}")

    def _persisted(self, source: GCSSource) -> None:
        # Runs in the worker thread right after the write, so the next pass
        # over this key never starts from the pre-write snapshot
        if self.cache.upsert(source):
            logger.debug(
                f"Cached {source.key} at resourceVersion {source.metadata.resource_version}"
            )

    async def process_next(self) -> None:
        """Take one key off the queue and reconcile it."""
        key = await self.queue.get()
        self._queued.discard(key)
        self._processing.add(key)
        try:
            await asyncio.to_thread(self.reconciler.reconcile_key, key, self._persisted)
            logger.info(f"Successfully reconciled {key}")
        except Exception as e:
            logger.error(f"Error reconciling {key}: {e}", exc_info=True)
            self.enqueue_after(key, self.requeue_delay)
        finally:
            self._processing.discard(key)
            if key in self._dirty:
                self._dirty.discard(key)
                self.enqueue(key)
            self.queue.task_done()

    async def _worker(self) -> None:
        while self.running:
            await self.process_next()

    # Watch handling

    def handle_source_event(self, event_type: str, obj: Dict[str, Any]) -> None:
        """Keep the cache in sync with a GCSSource event and enqueue it."""
        if event_type == "DELETED":
            metadata = obj.get("metadata") or {}
            self.cache.delete(metadata.get("namespace", "default"), metadata.get("name", ""))
            return

        try:
            source = self.scheme.decode(obj)
        except (KeyError, ValueError) as e:
            logger.warning(f"Ignoring undecodable GCSSource {object_key(obj)}: {e}")
            return
        self.cache.upsert(source)
        self.enqueue(source.key)

    def handle_relay_event(self, event_type: str, obj: Dict[str, Any]) -> None:
        """Any change to a relay re-reconciles the source that owns it."""
        self.enqueue_controller_of(obj)

    def _list_func(self, group: str, version: str, plural: str) -> Callable:
        if self.namespace:
            def list_namespaced(**kwargs):
                return self.api.list_namespaced_custom_object(
                    group, version, self.namespace, plural, **kwargs
                )

            return list_namespaced

        def list_cluster(**kwargs):
            return self.api.list_cluster_custom_object(group, version, plural, **kwargs)

        return list_cluster

    def _watch(self, name: str, list_func: Callable, handler: EventHandler) -> None:
        """Stream watch events into handler on the event loop until shutdown."""
        while not self._shutdown_event.is_set():
            w = watch.Watch()
            try:
                for event in w.stream(list_func, timeout_seconds=self.config.watch_timeout):
                    if self._shutdown_event.is_set():
                        w.stop()
                        break
                    if event["type"] == "ERROR":
                        logger.warning(f"Watch {name} returned an error: {event['object']}")
                        break
                    self._loop.call_soon_threadsafe(handler, event["type"], event["object"])
            except Exception as e:
                logger.error(f"Error in {name} watch: {e}", exc_info=True)
                self._shutdown_event.wait(self.requeue_delay)

    def _start_watch(self, name: str, list_func: Callable, handler: EventHandler) -> None:
        thread = threading.Thread(
            target=self._watch,
            args=(name, list_func, handler),
            name=f"watch-{name}",
            daemon=True,
        )
        thread.start()
        self._watchers.append(thread)
        logger.info(f"Started watch: {name}")

    # Lifecycle

    async def start(self, watch_resources: bool = True) -> None:
        """Start the workers and, optionally, the watches feeding them."""
        logger.info("Starting GCSSource controller")
        self._loop = asyncio.get_running_loop()
        self.running = True
        self._shutdown_event.clear()

        if watch_resources:
            self._start_watch(
                "gcssources",
                self._list_func(GCS_SOURCE_GROUP, GCS_SOURCE_VERSION, GCS_SOURCE_PLURAL),
                self.handle_source_event,
            )
            self._start_watch(
                "relays",
                self._list_func(RELAY_GROUP, RELAY_VERSION, RELAY_PLURAL),
                self.handle_relay_event,
            )

        self._workers = [
            asyncio.create_task(self._worker())
            for _ in range(self.max_concurrent_reconciles)
        ]
        try:
            await asyncio.gather(*self._workers)
        except asyncio.CancelledError:
            logger.info("Controller workers cancelled")

    async def stop(self) -> None:
        """Stop the workers and watches."""
        logger.info("Stopping GCSSource controller")
        self.running = False
        self._shutdown_event.set()

        for handle in self._timers:
            handle.cancel()
        self._timers.clear()

        for task in self._workers:
            if not task.done():
                task.cancel()
        self._workers.clear()

        # A watch notices shutdown once its current read returns
        for thread in self._watchers:
            await asyncio.to_thread(thread.join, self.config.shutdown_timeout)
            if thread.is_alive():
                logger.warning(f"Watch thread {thread.name} did not stop in time")
        self._watchers.clear()
