"""API endpoints for the front-end service."""

from dataclasses import dataclass


@dataclass
class Frontend:
    ROOT: str = "/"
    HEALTH: str = "/health"
    RECORDS: str = "/records"
    SPAM_RECORDS: str = "/spamrecords"
    RESULTS: str = "/results"
