"""metrics_agent – host-resident agent that samples OS and service metrics into Postgres."""

__version__ = "0.1.0"
