"""Doc-spec and spec-file parsing, curator block merging and reconciliation, run reports and sinks, and read-only git source resolution."""

__version__ = "0.1.0"