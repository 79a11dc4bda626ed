"""mindgraph: incremental graph model for node-link diagram editors."""

__version__ = "0.1.0"
