#!/usr/bin/env python3
"""
Cardano Connector - Backend Check

Runs a few read-only queries against the configured backend to confirm the
connection works before wiring it into an application.

Usage:
    CONNECTOR_PROVIDER=blockfrost CONNECTOR_NETWORK=preprod BLOCKFROST_KEY=... python main.py [address]
"""

import asyncio
import logging
import sys
from typing import Optional

from config import settings
from connector import BaseProvider, ConnectorError, KupmiosProvider, create_provider

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def banner(title: str):
    print("=" * 60)
    print(title)
    print("=" * 60)


async def show_address(provider: BaseProvider, address: str):
    utxos = await provider.get_utxos_by_address(address)
    lovelace = sum(u.output.value.coin for u in utxos)
    print(f"✅ {len(utxos)} UTxOs holding {lovelace / 1_000_000:,.6f} ADA")
    for u in utxos[:5]:
        kind = type(u.output).__name__
        print(f"   {u.input}  {u.output.value.coin:>15,}  {kind}")
    if len(utxos) > 5:
        print(f"   ... {len(utxos) - 5} more")
    for w in utxos.warnings:
        print(f"⚠️  {w.ref}: {w.message}")


async def check_backend(address: Optional[str] = None) -> bool:
    """Tip, protocol parameters, then node health or an address listing."""
    banner("Cardano Connector - Backend Check")
    print(f"Provider: {settings.provider}")
    print(f"Network:  {settings.network_name}")
    print()

    try:
        provider = create_provider(settings)
    except ConnectorError as e:
        print(f"❌ Cannot build provider: {e}")
        print()
        print("Troubleshooting:")
        print("  - CONNECTOR_PROVIDER must be blockfrost, maestro or kupmios")
        print("    (utxorpc needs a client object and is built in code)")
        print("  - BLOCKFROST_KEY / MAESTRO_KEY must be set for the REST backends")
        print("  - CONNECTOR_NETWORK must be mainnet, preprod or preview")
        return False

    steps = 3
    async with provider:
        try:
            print(f"[1/{steps}] Chain tip")
            tip = await provider.get_tip()
            print(f"✅ Slot {tip.slot:,}, height {tip.height:,}, block {tip.hash[:16]}...")

            print(f"[2/{steps}] Protocol parameters")
            params = await provider.get_protocol_parameters()
            print(f"✅ Protocol {params.protocol_major_version}.{params.protocol_minor_version}, "
                  f"fee {params.min_fee_coefficient} * size + {params.min_fee_constant}")
            print(f"   Cost models: {', '.join(sorted(params.cost_models)) or 'none'}")

            if address:
                print(f"[3/{steps}] UTxOs at {address[:20]}...")
                await show_address(provider, address)
            elif isinstance(provider, KupmiosProvider):
                print(f"[3/{steps}] Ogmios health")
                health = await provider.ogmios.health_check()
                if health["status"] == "healthy":
                    print(f"✅ Ogmios at {health['url']} is healthy")
                else:
                    print(f"⚠️  {health}")
            else:
                print(f"[3/{steps}] Nothing more to check without an address")
        except ConnectorError as e:
            print(f"❌ {type(e).__name__}: {e}")
            logger.exception("Backend check failed")
            return False

    print()
    banner("✅ Backend reachable")
    return True


async def main():
    address = sys.argv[1] if len(sys.argv) > 1 else None
    try:
        ok = await check_backend(address)
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        sys.exit(130)
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    asyncio.run(main())
