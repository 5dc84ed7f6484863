"""aws-sweeper - delete AWS resources matched by a declarative filter document."""

__version__ = "0.5.0"
