"""
Utils Package

Contains utility modules for the heating controller dashboard engine.
"""

from .issues import (
    ConfigIssue,
    IssueCollector,
    IssueSeverity,
    IssueCategory,
)
from .logger import setup_logger

__all__ = [
    'ConfigIssue',
    'IssueCollector',
    'IssueSeverity',
    'IssueCategory',
    'setup_logger',
]
