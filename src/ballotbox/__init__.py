"""ballotbox — single-election voting workflow engine."""

__version__ = "0.1.0"
