"""Reviewform core package.

A UI-independent engine for the multi-step testimonial submission flow,
organized into focused modules:

- **orchestrator**: ``ReviewForm``, the single state object and action API
- **validation**: Declarative field rules and the ``FieldValidator``
- **progress**: Step navigation and completion tracking
- **persistence**: Storage backends and TTL-bound auto-save snapshots
- **submission**: Honeypot check, duplicate-submit guard and the POST
- **api**: Async HTTP client for the submit, moderation and display endpoints
- **render**: Rich renderables for terminal front ends
- **cli**: The ``reviewform`` command

The main entry point is the ``ReviewForm`` class.
"""

from .models import ReviewSubmissionData, SubmissionResult
from .orchestrator import ReviewForm
from .version import __version__

__all__ = [
    "__version__",
    "ReviewForm",
    "ReviewSubmissionData",
    "SubmissionResult",
]
