"""
Stale ECR image reporting.

Scans an AWS ECR registry for images that were never pulled or were last
pulled before an age threshold, optionally keeping images referenced by pods
running in a Kubernetes cluster.
"""

__version__ = "0.1.0"
