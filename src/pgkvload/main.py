#!/usr/bin/env python3
"""
pgkvload

Write a deterministic dataset over a key range with N threads, and/or read it
back with M threads, regenerating every expected value from its key and
comparing. Reads and writes can run at the same time: readers then stay
--key-window keys behind the contiguous write watermark.

psql-compatible flags:
- -h host, -p port, -U user, -d dbname
(argparse help is remapped to --help / -?)

Usage:
  pgkvload -h localhost -U postgres -d kvtest --start-key 0 --num-keys 1000000 \\
      --write 10:1024:20 --read 100:20 --key-window 1000

  # later, verify the same data again
  pgkvload -d kvtest --start-key 0 --num-keys 1000000 --read 100 --data 10:1024

  # no database: exercise the engine against an in-process store
  pgkvload --memory --start-key 0 --num-keys 10000 --write 4:64:8 --read 100:4
"""

from __future__ import annotations

import argparse
import os
import sys

import psycopg

from .errors import ConfigurationError
from .keys import MAX_KEY, KeyRange
from .reader import DEFAULT_KEY_WINDOW, DEFAULT_MAX_ERRORS
from .schema import COMPRESSION_TYPES, count_keys, create_table
from .storage import MemoryStore, PostgresStore
from .tool import (
    USAGE_DATA,
    USAGE_READ,
    USAGE_WRITE,
    LoadTestOptions,
    describe,
    parse_data_spec,
    parse_read_spec,
    parse_write_spec,
    resolve_bounds,
    run_load_test,
)

DEFAULT_TABLE_NAME = "load_test"
DEFAULT_SCHEMA_NAME = "kv"


# -----------------------------
# Connection (psql-compatible)
# -----------------------------
def build_libpq_dsn(args) -> str:
    if args.dsn:
        return args.dsn

    parts: list[str] = []
    if args.host:
        parts.append(f"host={args.host}")
    if args.port:
        parts.append(f"port={args.port}")
    if args.user:
        parts.append(f"user={args.user}")
    if args.dbname:
        parts.append(f"dbname={args.dbname}")
    if args.password:
        parts.append(f"password={args.password}")
    if args.sslmode:
        parts.append(f"sslmode={args.sslmode}")
    if args.options:
        parts.append(f"options={args.options}")

    return " ".join(parts) if parts else ""


def psql_equivalent_cmd(args) -> str:
    cmd = ["psql"]
    if args.host:
        cmd += ["-h", args.host]
    if args.port:
        cmd += ["-p", str(args.port)]
    if args.user:
        cmd += ["-U", args.user]
    if args.dbname:
        cmd += ["-d", args.dbname]

    prefix = ""
    if args.password:
        prefix += "PGPASSWORD='***' "
    if args.sslmode:
        prefix += f"PGSSLMODE='{args.sslmode}' "
    return prefix + " ".join(cmd)


# -----------------------------
# Arguments
# -----------------------------
def build_parser() -> argparse.ArgumentParser:
    # argparse default -h conflicts with psql's -h(host).
    ap = argparse.ArgumentParser(
        prog="pgkvload",
        description="Write, read and verify a deterministic dataset in a key-value table.",
        add_help=False,
    )
    ap.add_argument(
        "--help", "-?", action="help", help="show this help message and exit"
    )

    # Connection (psql-compatible)
    ap.add_argument(
        "--dsn",
        default=os.environ.get("PG_DSN"),
        help="libpq DSN. Overrides -h/-p/-U/-d.",
    )
    ap.add_argument(
        "-h",
        "--host",
        default=None,
        help="database server host or socket directory (psql compatible).",
    )
    ap.add_argument(
        "-p",
        "--port",
        type=int,
        default=None,
        help="database server port (psql compatible).",
    )
    ap.add_argument(
        "-U", "--user", default=None, help="database user name (psql compatible)."
    )
    ap.add_argument(
        "-d", "--dbname", default=None, help="database name (psql compatible)."
    )
    ap.add_argument(
        "--password",
        default=None,
        help="database password (or use PGPASSWORD env / .pgpass).",
    )
    ap.add_argument(
        "--sslmode", default=None, help="sslmode (require, verify-full, etc.)."
    )
    ap.add_argument(
        "--options",
        default=None,
        help='libpq options string (e.g., "-c statement_timeout=0").',
    )
    ap.add_argument(
        "--print-psql",
        action="store_true",
        help="Print equivalent psql command and exit.",
    )
    ap.add_argument(
        "--memory",
        action="store_true",
        help="Use an in-process store instead of PostgreSQL (dry run).",
    )

    # Table
    ap.add_argument(
        "--table", default=DEFAULT_TABLE_NAME, help="Name of the table to read or write."
    )
    ap.add_argument(
        "--schema", default=DEFAULT_SCHEMA_NAME, help="Schema holding the table."
    )
    ap.add_argument(
        "--logged",
        action="store_true",
        help="Create a LOGGED table (default UNLOGGED for speed).",
    )
    ap.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop the table before creating it.",
    )
    ap.add_argument(
        "--compression",
        choices=COMPRESSION_TYPES,
        default=None,
        help="Compression for the value column.",
    )
    ap.add_argument(
        "--synchronous-commit",
        action="store_true",
        help="Keep synchronous_commit on for worker sessions (default off).",
    )

    # Workload
    ap.add_argument("--write", default=None, metavar="SPEC", help=USAGE_WRITE)
    ap.add_argument("--read", default=None, metavar="SPEC", help=USAGE_READ)
    ap.add_argument(
        "--data",
        default=None,
        metavar="SPEC",
        help=f"{USAGE_DATA}: generation sizes of the data a read-only pass verifies.",
    )
    ap.add_argument(
        "--multiput",
        action="store_true",
        help="Write each row with one call instead of one call per column.",
    )
    ap.add_argument(
        "--max-read-errors",
        type=int,
        default=DEFAULT_MAX_ERRORS,
        help="Read errors to tolerate before stopping all reader threads.",
    )
    ap.add_argument(
        "--key-window",
        type=int,
        default=DEFAULT_KEY_WINDOW,
        help="Keys to stay behind the write watermark in a concurrent read/write run.",
    )
    ap.add_argument(
        "--start-key", type=int, required=True, help="The first key to read/write."
    )
    ap.add_argument(
        "--num-keys", type=int, required=True, help="The number of keys to read/write."
    )
    ap.add_argument(
        "--progress-interval",
        type=float,
        default=5.0,
        help="Seconds between progress prints (0 disables).",
    )
    ap.add_argument("--seed", type=int, default=12345, help="Base RNG seed for sampling.")
    return ap


def options_from_args(args) -> LoadTestOptions:
    if args.start_key < 0:
        raise ConfigurationError(f"--start-key must be >= 0, got {args.start_key}")
    if not 1 <= args.num_keys <= MAX_KEY - args.start_key:
        raise ConfigurationError(
            f"--num-keys must be in 1..{MAX_KEY - args.start_key}, got {args.num_keys}"
        )

    write = parse_write_spec(args.write, multi_put=args.multiput) if args.write else None
    read = (
        parse_read_spec(
            args.read, max_errors=args.max_read_errors, key_window=args.key_window
        )
        if args.read
        else None
    )
    data = parse_data_spec(args.data) if args.data else None
    if write is None and read is None:
        raise ConfigurationError("either --write or --read has to be specified")

    return LoadTestOptions(
        key_range=KeyRange.from_count(args.start_key, args.num_keys),
        bounds=resolve_bounds(write, data),
        write=write,
        read=read,
        progress_interval=args.progress_interval,
        seed=args.seed,
    )


# -----------------------------
# Main
# -----------------------------
def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    dsn = build_libpq_dsn(args)

    if args.print_psql:
        print(psql_equivalent_cmd(args))
        return 0

    try:
        options = options_from_args(args)
    except ConfigurationError as e:
        print(f"[config] {e}", file=sys.stderr)
        return 2

    for line in describe(options):
        print(line)

    if args.memory:
        store = MemoryStore()
        report = run_load_test(options, store)
        return report.exit_code

    # Coordinator connection
    coord = psycopg.connect(dsn)
    try:
        coord.execute("SET client_min_messages=warning")
        print(f"[setup] ensuring table {args.schema}.{args.table} ...")
        create_table(
            coord,
            schema=args.schema,
            table=args.table,
            logged=args.logged,
            drop_existing=args.drop_existing,
            compression=args.compression,
        )

        store = PostgresStore(
            dsn,
            table=args.table,
            schema=args.schema,
            synchronous_commit=args.synchronous_commit,
        )
        try:
            report = run_load_test(options, store)
        finally:
            store.close()

        if options.write is not None:
            print(f"[done] table holds {count_keys(coord, args.schema, args.table):,} keys")
    finally:
        coord.close()

    return report.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
