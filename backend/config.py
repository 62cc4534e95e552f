"""
Configuration settings for the redeploy job.
"""
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Application
    APP_NAME: str = Field(default="k8s-redeploy", description="Application name")

    # Matching
    MATCH_SUBSTRING: str = Field(default="database", description="Case-insensitive substring matched against pod names")
    NAMESPACE_SCOPE: Optional[str] = Field(default=None, description="Restrict pod listing to one namespace (all when unset)")
    OWNER_LABEL: str = Field(default="app", description="Pod label holding the owning deployment name")
    DEDUPE_DEPLOYMENTS: bool = Field(default=False, description="Restart each deployment at most once per run")

    # Kubernetes Configuration
    K8S_CONTEXT: Optional[str] = Field(default=None, description="Kubernetes context")
    K8S_IN_CLUSTER: bool = Field(default=False, description="Running in cluster")

    # Client Configuration
    REQUEST_TIMEOUT_SECS: int = Field(default=30, description="Request timeout")
    LIST_PAGE_SIZE: int = Field(default=500, ge=1, description="Pods fetched per list request")
    LOG_LEVEL: str = Field(default="info", description="Log level: info|debug|warning")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


# Global settings instance
settings = Settings()
