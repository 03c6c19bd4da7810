"""Claim verification and asynchronous job orchestration.

Segments unstructured text into factual claims, verifies each claim against
the Parallel evidence-search service, and runs the longer job modes (deep
research, structured task, FindAll) through a shared submit/poll machine.
"""

__version__ = "0.1.0"
