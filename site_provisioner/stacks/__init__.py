"""CDK stacks for static website infrastructure."""

from .site_stack import StaticSiteStack

__all__ = ["StaticSiteStack"]
