"""Public models for the novel resource API."""

from novel_sdk.models.resources import HealthStatus, MutationResult, Novel, UserCredit

__all__ = ["Novel", "UserCredit", "MutationResult", "HealthStatus"]
