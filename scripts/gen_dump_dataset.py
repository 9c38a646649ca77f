#!/usr/bin/env python3
"""Dataset generation script for performance testing.

Generates a synthetic line-protocol dump in the export format the importer
reads:
- "# DDL" section with a CREATE DATABASE statement
- "# DML" section with CONTEXT-DATABASE / CONTEXT-RETENTION-POLICY directives
  followed by data lines

Optionally gzip compressed, for exercising the --compressed path.
"""
from __future__ import annotations

import argparse
import gzip
import random
import sys
from collections.abc import Iterator
from pathlib import Path

MEASUREMENTS = ["cpu", "mem", "disk", "net", "temperature"]
HOSTS = [f"server{i:02d}" for i in range(1, 21)]
REGIONS = ["us-west", "us-east", "eu-central", "ap-south"]


def generate_points(points: int, seed: int = 42, start_ns: int = 1_600_000_000_000_000_000) -> Iterator[str]:
    """Yield synthetic line-protocol points, one second apart."""
    rng = random.Random(seed)
    for i in range(points):
        measurement = rng.choice(MEASUREMENTS)
        host = rng.choice(HOSTS)
        region = rng.choice(REGIONS)
        value = round(rng.uniform(0, 100), 3)
        count = rng.randint(0, 10_000)
        ts = start_ns + i * 1_000_000_000
        yield f"{measurement},host={host},region={region} value={value},count={count}i {ts}"


def generate_dump_lines(
    points: int,
    database: str,
    retention_policy: str,
    seed: int = 42,
    context_every: int = 0,
) -> Iterator[str]:
    """Yield every line of a dump file.

    context_every > 0 repeats the CONTEXT directives every N points, as
    multi-shard exports do.
    """
    yield "# DDL"
    yield f"CREATE DATABASE {database} WITH NAME {retention_policy}"
    yield "# DML"
    yield f"# CONTEXT-DATABASE:{database}"
    yield f"# CONTEXT-RETENTION-POLICY:{retention_policy}"
    for i, line in enumerate(generate_points(points, seed)):
        if context_every and i and i % context_every == 0:
            yield f"# CONTEXT-DATABASE:{database}"
            yield f"# CONTEXT-RETENTION-POLICY:{retention_policy}"
        yield line


def write_dump(
    output_path: Path,
    points: int,
    database: str = "perf",
    retention_policy: str = "autogen",
    seed: int = 42,
    compressed: bool = False,
    context_every: int = 0,
) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    opener = gzip.open if compressed else open
    with opener(output_path, "wt", encoding="utf-8") as f:
        for line in generate_dump_lines(points, database, retention_policy, seed, context_every):
            f.write(line + "\n")

    print(f"Created dump file: {output_path}")
    print(f"  Points: {points:,}")
    print(f"  Database: {database}  Retention policy: {retention_policy}")
    print(f"  Compressed: {compressed}")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate synthetic line-protocol dumps for performance testing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate default 100k points
  %(prog)s dump.txt

  # Generate a compressed dump with 1M points
  %(prog)s dump.txt.gz --points 1000000 --compressed
        """
    )
    parser.add_argument("output", type=Path, help="Output dump file path")
    parser.add_argument("--points", type=int, default=100_000, help="Number of points (default: 100,000)")
    parser.add_argument("--database", default="perf", help="Database name in the dump (default: perf)")
    parser.add_argument("--retention-policy", default="autogen", help="Retention policy (default: autogen)")
    parser.add_argument("--context-every", type=int, default=0,
                        help="Repeat CONTEXT directives every N points (default: never)")
    parser.add_argument("--compressed", action="store_true", help="gzip the output")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args()

    if args.points <= 0:
        print("Error: --points must be positive", file=sys.stderr)
        return 1
    if args.context_every < 0:
        print("Error: --context-every must not be negative", file=sys.stderr)
        return 1

    try:
        write_dump(
            args.output,
            args.points,
            database=args.database,
            retention_policy=args.retention_policy,
            seed=args.seed,
            compressed=args.compressed,
            context_every=args.context_every,
        )
    except OSError as e:
        print(f"\nError generating dataset: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
