"""Smart Search - fuzzy record resolution and search confidence estimation.

Resolves registry records from partial or noisy input (identifier, phone,
or a name plus location hints) and estimates how specific a set of search
criteria is before any query runs.
"""

__version__ = "0.3.0"

# Lazy imports keep `import smart_search` cheap for the CLI
def __getattr__(name: str):
    if name == "matching":
        from smart_search import matching
        return matching
    if name == "models":
        from smart_search import models
        return models
    if name == "search":
        from smart_search import search
        return search
    if name == "statistics":
        from smart_search import statistics
        return statistics
    if name == "client":
        from smart_search import client
        return client
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
