"""CDK constructs for static website infrastructure."""

from .static_website import StaticWebsiteConstruct

__all__ = ["StaticWebsiteConstruct"]
