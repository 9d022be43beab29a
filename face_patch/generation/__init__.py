"""
Generation Module

Contract for the external generative image service, the retry policy
applied around it and a Gemini REST implementation.

Components:
- GenerationClient: Abstract generation interface
- RetryingGenerationClient: Exponential backoff for transient errors
- GeminiGenerationClient: Gemini generateContent client
"""

from .client import GenerationClient
from .retry import RetryingGenerationClient, backoff_delays
from .gemini import GeminiGenerationClient, resolve_api_key, DEFAULT_MODEL

__version__ = "1.0.0"
__all__ = [
    "GenerationClient",
    "RetryingGenerationClient",
    "backoff_delays",
    "GeminiGenerationClient",
    "resolve_api_key",
    "DEFAULT_MODEL"
]
