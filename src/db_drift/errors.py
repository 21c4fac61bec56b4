"""Error taxonomy for catalog introspection.

A missing table or function is not an error: lookups return the
``Absent`` / ``NotFound`` values from ``db_drift.schema.models`` instead.
Everything raised from here means the caller did NOT get a complete answer
and must not treat the outcome as "nothing exists".

Usage:
    from db_drift.errors import CatalogError, ConnectivityError, QueryError

    try:
        tables = await reader.list_managed_schema_tables()
    except ConnectivityError:
        ...  # database unreachable, caller decides on retry/backoff
    except QueryError as e:
        print(f"{e.query} failed for {e.target}")
"""


class CatalogError(Exception):
    """Base class for every failure raised by catalog operations."""

    pass


class ConnectivityError(CatalogError):
    """Raised when the database cannot be reached.

    Never retried internally -- retry policy belongs to the caller.
    """

    pass


class QueryError(CatalogError):
    """Raised when a catalog query is rejected, fails, or times out.

    Attributes:
        query: Logical name of the catalog query (e.g. ``"managed_tables"``).
        target: The object being inspected, if any (e.g. ``"app.mt_doc_user"``).
        retryable: Always ``True`` -- the failure is scoped to one operation.
    """

    retryable = True

    def __init__(self, message: str, query: str, target: str | None = None) -> None:
        super().__init__(message)
        self.query = query
        self.target = target

    def __str__(self) -> str:
        base = super().__str__()
        if self.target:
            return f"{base} [query={self.query}, target={self.target}]"
        return f"{base} [query={self.query}]"


class AmbiguousOverload(CatalogError):
    """Raised when a function name matches several overloads and the
    caller did not pick one by argument signature.
    """

    def __init__(self, name: str, signatures: list[str]) -> None:
        self.name = name
        self.signatures = list(signatures)
        listed = ", ".join(f"({s})" for s in self.signatures)
        count = len(self.signatures)
        noun = "overload" if count == 1 else "overloads"
        super().__init__(
            f"Function '{name}' has {count} {noun}: {listed}. "
            f"Pass arguments=... to select one."
        )
