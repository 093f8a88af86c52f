"""Create the key-value table the load test writes into."""

from __future__ import annotations

from psycopg import sql

from .errors import ConfigurationError

COMPRESSION_TYPES = ("pglz", "lz4")

DDL_TEMPLATE = """
CREATE SCHEMA IF NOT EXISTS {schema};

{drop}

{create_table} IF NOT EXISTS {table} (
  key    bigint NOT NULL,
  col    int    NOT NULL,
  value  bytea  NOT NULL,
  PRIMARY KEY (key, col)
);

{compression}
"""


def table_ddl(
    schema: str,
    table: str,
    logged: bool,
    drop_existing: bool = False,
    compression: str | None = None,
) -> sql.Composed:
    if compression is not None and compression not in COMPRESSION_TYPES:
        raise ConfigurationError(
            f"compression must be one of {', '.join(COMPRESSION_TYPES)}, got {compression!r}"
        )

    ident = sql.Identifier(schema, table)
    create_table = "CREATE TABLE" if logged else "CREATE UNLOGGED TABLE"
    drop = sql.SQL("DROP TABLE IF EXISTS {};").format(ident) if drop_existing else sql.SQL("")
    compression_sql = sql.SQL("")
    if compression is not None:
        compression_sql = sql.SQL(
            "ALTER TABLE {} ALTER COLUMN value SET COMPRESSION {};"
        ).format(ident, sql.SQL(compression))

    return sql.SQL(DDL_TEMPLATE).format(
        schema=sql.Identifier(schema),
        drop=drop,
        create_table=sql.SQL(create_table),
        table=ident,
        compression=compression_sql,
    )


def create_table(
    conn,
    schema: str,
    table: str,
    logged: bool,
    drop_existing: bool = False,
    compression: str | None = None,
) -> None:
    conn.execute(table_ddl(schema, table, logged, drop_existing, compression))
    conn.commit()


def count_keys(conn, schema: str, table: str) -> int:
    row = conn.execute(
        sql.SQL("SELECT count(DISTINCT key) FROM {}").format(sql.Identifier(schema, table))
    ).fetchone()
    return int(row[0])
