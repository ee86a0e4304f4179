"""Helpers for translating botocore errors."""

from botocore.exceptions import ClientError

from ..errors import ProviderError


def error_code(e: ClientError) -> str:
  """Error code from a botocore ClientError response."""
  return str(e.response.get("Error", {}).get("Code", ""))


def provider_error(e: ClientError, action: str) -> ProviderError:
  """Wrap an unexpected ClientError; raise the result ``from e``."""
  message = e.response.get("Error", {}).get("Message", str(e))
  return ProviderError(f"{action} failed ({error_code(e)}): {message}")
