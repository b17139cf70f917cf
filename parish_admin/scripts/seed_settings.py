"""Ensure the settings document exists on the backend.

Fetches ``/settings/<id>``; when it is missing, creates it from the built-in
seed (programs, relationships, fee codes, event types, levels, payment
methods, volunteers).

Usage:
    parish-admin-seed
    python -m parish_admin.scripts.seed_settings --base-url http://localhost:3000

Idempotent: an existing document is left untouched.
"""

import argparse
import asyncio
import sys

import httpx

from parish_admin.api import ApiError, NotFoundError, create_http_client
from parish_admin.api.setup import SetupClient
from parish_admin.config import Settings, settings
from parish_admin.logging_config import configure_logging


async def seed_settings(config: Settings, transport: httpx.AsyncBaseTransport | None = None) -> bool:
    """Create the settings document if it is missing.

    Args:
        config: Settings providing the base URL and document id.
        transport: Optional transport override.

    Returns:
        True when the document exists afterwards.
    """
    async with create_http_client(config, transport=transport) as http:
        client = SetupClient(http, config.setup_document_id)
        print(f"  Backend: {config.api_base_url}")
        try:
            document = await client.get()
            print(f"  Settings '{config.setup_document_id}' already exists")
        except NotFoundError:
            print(f"  Settings '{config.setup_document_id}' missing, seeding defaults...")
            document = await client.get_or_seed()
            print("  Settings created")
        except (ApiError, httpx.HTTPError) as e:
            print(f"  Backend: FAILED - {e}")
            return False

    for name, items in document.items():
        if isinstance(items, list):
            print(f"    {name}: {len(items)}")
    return True


def main():
    parser = argparse.ArgumentParser(description="Seed the parish admin settings document")
    parser.add_argument(
        "--base-url",
        default=None,
        help=f"Backend base URL (default: {settings.api_base_url})",
    )
    parser.add_argument(
        "--document-id",
        default=None,
        help=f"Settings document id (default: {settings.setup_document_id})",
    )
    args = parser.parse_args()

    overrides = {}
    if args.base_url:
        overrides["api_base_url"] = args.base_url.rstrip("/")
    if args.document_id:
        overrides["setup_document_id"] = args.document_id
    config = settings.model_copy(update=overrides) if overrides else settings

    configure_logging(config.log_level)
    if not asyncio.run(seed_settings(config)):
        print("Error: could not reach the settings document")
        sys.exit(1)

    print("\nSettings ready!")


if __name__ == "__main__":
    main()
