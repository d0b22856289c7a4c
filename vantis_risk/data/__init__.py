"""Oracle, market and storage collaborators.

``create_engine`` is resolved lazily so that modules elsewhere in the package
can import from ``vantis_risk.data`` without pulling in the engine.
"""

__all__ = ["create_engine"]


def __getattr__(name):
    if name == "create_engine":
        from vantis_risk.data.provider_factory import create_engine

        return create_engine
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
