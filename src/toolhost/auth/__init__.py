"""Credential providers for authenticated tool servers."""

from toolhost.auth.google import AccessToken, GoogleCredentialProvider

__all__ = ["AccessToken", "GoogleCredentialProvider"]
