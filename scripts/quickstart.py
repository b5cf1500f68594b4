#!/usr/bin/env python
"""Walk through the index lifecycle against a running CyborgDB service.

Usage:
    python -m scripts.quickstart --base-url http://localhost:8000 --dimension 8

Reads the API key from CYBORGDB_API_KEY. Creates a temporary index,
upserts random vectors, trains, queries, and deletes the index again.
"""

import argparse
import asyncio
import random
import sys
import uuid

from cyborgdb.client import Client
from cyborgdb.config import ServiceSettings
from cyborgdb.exceptions import CyborgDBError
from cyborgdb.filters import gte
from cyborgdb.indexes import IndexIVFFlat
from cyborgdb.logging_config import get_logger, setup_logging
from cyborgdb.query import batch_vector_query, single_vector_query
from cyborgdb.vectors import VectorItem

logger = get_logger(__name__)


def _random_vector(dimension: int) -> list[float]:
    return [random.random() for _ in range(dimension)]


async def run_quickstart(
    base_url: str,
    dimension: int,
    count: int,
    top_k: int,
) -> bool:
    """Run the demo flow and report whether it completed.

    Args:
        base_url: Service base URL.
        dimension: Vector dimension for the temporary index.
        count: Number of vectors to upsert.
        top_k: Neighbors per query.

    Returns:
        True if every step succeeded.
    """
    setup_logging(level="INFO")

    settings = ServiceSettings(base_url=base_url)
    index_name = f"quickstart_{uuid.uuid4().hex[:8]}"

    async with Client(settings=settings) as client:
        health = await client.get_health()
        logger.info(f"Service health: {health}")

        key = client.generate_key()
        index = await client.create_index(
            index_name,
            key,
            IndexIVFFlat(dimension=dimension),
        )

        try:
            items = [
                VectorItem(
                    id=f"item-{i}",
                    vector=_random_vector(dimension),
                    contents=f"document {i}",
                    metadata={"rank": i, "group": "even" if i % 2 == 0 else "odd"},
                )
                for i in range(count)
            ]
            await index.upsert(items)
            logger.info(f"Upserted {len(items)} items into {index_name}")

            await index.train()

            single = await index.query(
                single_vector_query(
                    _random_vector(dimension),
                    top_k=top_k,
                    include=["distance", "metadata"],
                    filters=gte("rank", 1),
                )
            )
            batch = await index.query(
                batch_vector_query(
                    [_random_vector(dimension) for _ in range(3)],
                    top_k=top_k,
                    include=["distance"],
                )
            )

            print("\n" + "=" * 60)
            print("QUICKSTART SUMMARY")
            print("=" * 60)
            print(f"Index: {index_name} ({index.index_type})")
            print(f"Trained: {index.is_trained()}")
            print(f"Single query hits: {len(single.results)}")
            for item in single.results:
                print(f"  {item.id}: distance={item.distance} metadata={item.metadata}")
            print(f"Batch result sets: {len(batch.result_sets)}")
            print("=" * 60)

        finally:
            await index.delete_index()

    return True


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Run the CyborgDB client quickstart",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--base-url",
        default="http://localhost:8000",
        help="CyborgDB service base URL",
    )
    parser.add_argument(
        "--dimension",
        type=int,
        default=8,
        help="Vector dimension",
    )
    parser.add_argument(
        "--count",
        type=int,
        default=100,
        help="Number of vectors to upsert",
    )
    parser.add_argument(
        "--top-k",
        type=int,
        default=5,
        help="Neighbors per query",
    )

    args = parser.parse_args()

    try:
        passed = asyncio.run(
            run_quickstart(
                base_url=args.base_url,
                dimension=args.dimension,
                count=args.count,
                top_k=args.top_k,
            )
        )
    except CyborgDBError as e:
        logger.error(f"Quickstart failed: {e.message}", extra={"code": e.code.value})
        passed = False

    sys.exit(0 if passed else 1)


if __name__ == "__main__":
    main()
