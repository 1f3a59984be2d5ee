"""
Main entry point for the GCS Source controller.

Builds every collaborator explicitly and starts the controller.
"""

import asyncio
import logging
import signal
from typing import Optional

from google.cloud import pubsub_v1, storage
from kubernetes import client, dynamic
from kubernetes import config as kube_config

from adapters.pubsub import PubSubTopicAdapter
from adapters.relay import KubernetesRelayAdapter
from adapters.storage import StorageNotificationAdapter
from config import Config, get_config
from controller import Controller
from models import GCSSource
from reconciler import Reconciler
from scheme import Scheme
from sink import KubernetesSinkResolver
from store import KubernetesSourceStore, SourceCache

logger = logging.getLogger(__name__)


def build_scheme() -> Scheme:
    """Create the scheme holding every kind the controller decodes."""
    scheme = Scheme()
    scheme.register(GCSSource)
    return scheme


def load_kube_config(cfg: Config) -> None:
    if cfg.kubernetes.in_cluster:
        kube_config.load_incluster_config()
    else:
        kube_config.load_kube_config(config_file=cfg.kubernetes.kubeconfig)


class Application:
    """Main application that wires the reconciler and its controller."""

    def __init__(self, cfg: Optional[Config] = None):
        self.config = cfg or get_config()
        self.controller: Optional[Controller] = None

    def initialize(self) -> None:
        """Initialize all components."""
        logger.info("Initializing GCS Source controller")
        load_kube_config(self.config)

        ctrl_config = self.config.controller
        timeout = ctrl_config.adapter_timeout
        # Every client is built here, once, before any worker thread uses it
        api_client = client.ApiClient()
        custom_api = client.CustomObjectsApi(api_client)
        dynamic_client = dynamic.DynamicClient(api_client)
        publisher = pubsub_v1.PublisherClient()
        storage_client = storage.Client()

        scheme = build_scheme()
        cache = SourceCache()
        reconciler = Reconciler(
            lister=cache,
            store=KubernetesSourceStore(scheme, api=custom_api, timeout=timeout),
            sink_resolver=KubernetesSinkResolver(dynamic_client),
            topics=PubSubTopicAdapter(publisher, timeout=timeout),
            notifications=StorageNotificationAdapter(storage_client, timeout=timeout),
            relays=KubernetesRelayAdapter(api=custom_api, timeout=timeout),
        )

        self.controller = Controller(
            reconciler=reconciler,
            cache=cache,
            scheme=scheme,
            config=ctrl_config,
            api=custom_api,
            namespace=self.config.kubernetes.namespace,
        )
        logger.info("All components initialized")

    async def start(self) -> None:
        if self.controller is None:
            self.initialize()
        await self.controller.start()

    async def stop(self) -> None:
        logger.info("Stopping GCS Source controller")
        if self.controller:
            await self.controller.stop()
        logger.info("GCS Source controller stopped")


async def main() -> None:
    """Main entry point."""
    cfg = get_config()
    logging.basicConfig(
        level=cfg.controller.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    app = Application(cfg)

    # Set up signal handlers for graceful shutdown
    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Received shutdown signal")
        asyncio.create_task(app.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await app.start()
    finally:
        await app.stop()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
