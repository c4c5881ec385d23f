"""
Google Gemini text-generation client.

Thin wrapper so the speech adapter depends on a single `generate(prompt)`
call and tests can substitute a fake.
"""

import logging
import os
from typing import Optional

import google.generativeai as genai

from core.errors import UpstreamAnalysisFailure

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-1.5-pro"
DEFAULT_TIMEOUT_SEC = 30.0


class GeminiTextClient:
    """
    Text completion client backed by Gemini.

    Usage:
        client = GeminiTextClient()
        text = client.generate("Analyze this speech ...")
    """

    def __init__(
        self,
        api_key: str = None,
        model_name: str = DEFAULT_MODEL,
        timeout: float = DEFAULT_TIMEOUT_SEC,
        api_key_env: str = "GEMINI_API_KEY"
    ):
        """
        Initialize Gemini client.

        Args:
            api_key: Gemini API key. If None, reads from api_key_env.
            model_name: Generative model to use
            timeout: Request timeout in seconds
            api_key_env: Environment variable holding the key
        """
        self.api_key = api_key or os.getenv(api_key_env)

        if not self.api_key:
            raise ValueError(f"Gemini API key required. Set {api_key_env} environment variable.")

        genai.configure(api_key=self.api_key)

        self.model_name = model_name
        self.timeout = timeout
        self.model = genai.GenerativeModel(model_name)

        logger.info(f"Gemini text client initialized (model={model_name})")

    def generate(self, prompt: str) -> str:
        """
        Generate free-form text for a prompt.

        Args:
            prompt: Prompt text

        Returns:
            Raw response text

        Raises:
            UpstreamAnalysisFailure: If the call fails or returns no text
        """
        try:
            response = self.model.generate_content(
                prompt,
                request_options={"timeout": self.timeout}
            )
            text: Optional[str] = response.text
        except Exception as e:
            raise UpstreamAnalysisFailure(f"Gemini request failed: {e}") from e

        if text is None:
            raise UpstreamAnalysisFailure("Gemini returned an empty response")

        return text
