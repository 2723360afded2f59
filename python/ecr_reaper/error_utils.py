"""
Error message utilities for providing actionable guidance to users.

Every failure talking to ECR or Kubernetes is wrapped in an ActionableError
carrying a category, suggested fixes and the original error details. Nothing
here retries; the error propagates and ends the run.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCategory(Enum):
    """Categories of errors for better error handling"""
    AUTHENTICATION = "authentication"
    CONFIGURATION = "configuration"
    PERMISSION = "permission"
    REGISTRY = "registry"
    RESOURCE = "resource"
    UNKNOWN = "unknown"


class ActionableError(Exception):
    """Exception with actionable guidance for users"""

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.UNKNOWN,
                 suggestions: Optional[List[str]] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize actionable error

        Args:
            message: Primary error message
            category: Error category for classification
            suggestions: List of suggested fixes
            details: Additional context information
        """
        self.message = message
        self.category = category
        self.suggestions = suggestions or []
        self.details = details or {}
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the complete error message with suggestions"""
        lines = [self.message]

        if self.suggestions:
            lines.append("Suggested fixes:")
            for i, suggestion in enumerate(self.suggestions, 1):
                lines.append(f"   {i}. {suggestion}")

        if self.details:
            lines.append("Additional details:")
            for key, value in self.details.items():
                lines.append(f"   {key}: {value}")

        return "\n".join(lines)


def _error_code(error: Exception) -> str:
    """Pull the AWS error code out of a botocore ClientError, if there is one."""
    response = getattr(error, "response", None)
    if isinstance(response, dict):
        return response.get("Error", {}).get("Code", "")
    return ""


def create_registry_error(operation: str, error: Exception) -> ActionableError:
    """Create actionable error for ECR API failures"""
    error_str = str(error).lower()
    code = _error_code(error)

    suggestions = [
        "Verify AWS credentials are configured (aws configure, AWS_PROFILE or an instance role)",
        "Check the -region flag matches the region hosting the registry",
        "Check AWS IAM permissions for ecr:DescribeRepositories, ecr:ListImages and ecr:DescribeImages",
    ]
    category = ErrorCategory.REGISTRY

    if "credentials" in error_str or code in ("UnrecognizedClientException", "ExpiredTokenException"):
        category = ErrorCategory.AUTHENTICATION
        suggestions.insert(0, "Refresh or export AWS credentials (AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY)")
    elif code == "AccessDeniedException":
        category = ErrorCategory.PERMISSION
        suggestions.insert(0, "Attach an IAM policy granting read access to ECR")
    elif code == "RepositoryNotFoundException":
        category = ErrorCategory.RESOURCE
        suggestions.insert(0, "The repository may have been deleted while the scan was running")

    details = {
        "operation": operation,
        "error_type": type(error).__name__,
        "error_message": str(error),
    }
    if code:
        details["error_code"] = code

    return ActionableError(
        message=f"ECR operation failed: {operation}",
        category=category,
        suggestions=suggestions,
        details=details,
    )


def create_kubernetes_config_error(error: Exception) -> ActionableError:
    """Create actionable error when neither in-cluster nor kubeconfig loading works"""
    return ActionableError(
        message="Failed to load Kubernetes configuration",
        category=ErrorCategory.CONFIGURATION,
        suggestions=[
            "When running in a pod, verify the service account token is mounted",
            "When running locally, verify KUBECONFIG or ~/.kube/config points at the cluster",
            "Run with -mode ecr to skip the workload cross-check",
        ],
        details={
            "error_type": type(error).__name__,
            "error_message": str(error),
        },
    )


def create_kubernetes_error(operation: str, error: Exception) -> ActionableError:
    """Create actionable error for Kubernetes API failures"""
    error_str = str(error).lower()

    suggestions = [
        "Verify Kubernetes cluster access (kubectl cluster-info)",
        "Verify RBAC permissions allow listing pods",
    ]

    forbidden = "403" in error_str or "forbidden" in error_str
    if forbidden:
        suggestions.insert(0, "Grant the service account 'list' on pods (cluster-wide or in the namespace)")

    if "404" in error_str or "not found" in error_str:
        suggestions.insert(0, "Check if the namespace name is correct")

    return ActionableError(
        message=f"Kubernetes operation failed: {operation}",
        category=ErrorCategory.PERMISSION if forbidden else ErrorCategory.RESOURCE,
        suggestions=suggestions,
        details={
            "operation": operation,
            "error_type": type(error).__name__,
            "error_message": str(error),
        },
    )


def create_config_error(field: str, value: Any, reason: str) -> ActionableError:
    """Create actionable error for configuration validation failures"""
    suggestions = [
        f"Check the '{field}' value in config.yaml",
        "Check config-example.yaml for the expected format",
    ]

    if "days" in field.lower():
        suggestions.insert(1, "days must be a non-negative whole number")
    elif "region" in field.lower():
        suggestions.insert(1, "Region should look like us-east-1")

    return ActionableError(
        message=f"Configuration error: Invalid value for '{field}'",
        category=ErrorCategory.CONFIGURATION,
        suggestions=suggestions,
        details={
            "field": field,
            "value": value,
            "reason": reason,
        },
    )
