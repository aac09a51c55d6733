"""
Main entry point for dns-reconciler.
"""

import asyncio
import logging
import sys
from pathlib import Path

from dns_reconciler.config.config import Config
from dns_reconciler.controller.controller import Controller
from dns_reconciler.controller.policy import policy_from_name
from dns_reconciler.provider.inmemory import InMemoryProvider
from dns_reconciler.registry.registry import NoopRegistry
from dns_reconciler.registry.txt_registry import TXTRegistry
from dns_reconciler.source.source import MultiSource, StaticSource, node_alias_endpoints
from dns_reconciler.utils.health import HealthCheckServer


def build_controller(config: Config) -> Controller:
    """
    Wire source, provider, registry and controller from configuration.

    Args:
        config: Loaded configuration

    Returns:
        Controller: Ready to run controller
    """
    node_endpoints = []
    for node in config.nodes:
        node_endpoints.extend(
            node_alias_endpoints(
                node.name,
                node.labels,
                [address.model_dump() for address in node.addresses],
            )
        )
    source = MultiSource(
        [StaticSource(node_endpoints), StaticSource(config.desired_endpoints())]
    )

    provider = InMemoryProvider(config.zones, dry_run=config.dry_run)
    if config.registry == "txt":
        registry = TXTRegistry(
            provider,
            txt_owner_id=config.txt_owner_id,
            txt_prefix=config.txt_prefix,
            txt_wildcard_replacement=config.txt_wildcard_replacement,
            encrypt_txt=config.encrypt_txt,
            encryption_key=config.encryption_key,
        )
    else:
        registry = NoopRegistry(provider)

    return Controller(
        source,
        registry,
        policies=[policy_from_name(config.policy)],
        interval=config.interval_seconds,
        cleanup_delay=config.cleanup_delay_seconds,
    )


async def main():
    """Main entry point running the reconciliation loop."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logger = logging.getLogger("dns-reconciler")

    config_path = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    config = Config.from_yaml(config_path)

    log_level = getattr(logging, config.log_level.upper(), logging.INFO)
    logging.getLogger().setLevel(log_level)
    logger.info(
        f"Starting dns-reconciler (owner '{config.txt_owner_id}', policy '{config.policy}')"
    )

    controller = build_controller(config)

    if config.once:
        await controller.run_once()
        return

    health_server = None
    if config.health_enabled:
        health_server = HealthCheckServer(controller, port=config.health_port)
        health_server.start()

    try:
        await controller.run_reconciliation_loop()
    finally:
        if health_server:
            health_server.stop()


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nShutting down dns-reconciler")
        sys.exit(0)


if __name__ == "__main__":
    run()
