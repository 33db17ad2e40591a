import logging

import aisuite

from typing import Dict, List, Optional

from ..config import API_KEY_ENV, BUILTIN_DEFAULTS, DEFAULT_PROVIDER, CompletionOptions
from ..errors import CompletionError, ConfigurationError

logger = logging.getLogger(__name__)


class CompletionClient:
    """
    A wrapper for the completion service that hides the provider library.

    The credential is injected by the caller instead of being read from the
    environment here, so the client can be built in tests without touching
    os.environ.
    """

    def __init__(self, api_key: Optional[str], provider: str = DEFAULT_PROVIDER):
        """
        Initializes the client.

        Args:
            api_key: The completion service credential.
            provider: The aisuite provider name (e.g. "openai").

        Raises:
            ConfigurationError: If no credential was supplied. This happens
                before any provider object is built, so no network call can
                be attempted without a credential.
        """
        if not api_key:
            raise ConfigurationError(
                f"{API_KEY_ENV} is not defined in environment variables."
            )
        self.provider = provider
        self.client = aisuite.Client({provider: {"api_key": api_key}})

    @staticmethod
    def format_system_message(content: str) -> Dict:
        return {"role": "system", "content": content}

    @staticmethod
    def format_user_message(content: str) -> Dict:
        return {"role": "user", "content": content}

    def build_messages(self, prompt: str, options: CompletionOptions) -> List[Dict]:
        messages = []
        if options.system_message:
            messages.append(self.format_system_message(options.system_message))
        messages.append(self.format_user_message(prompt))
        return messages

    def complete(self, prompt: str, options: Optional[CompletionOptions] = None) -> str:
        """
        Sends a single prompt and returns the generated text.

        Without `options` the built-in chat defaults are used.

        Raises:
            ValueError: If the prompt is empty.
            CompletionError: On any transport, authentication or API failure.
        """
        if not prompt or not prompt.strip():
            raise ValueError("Prompt must not be empty.")

        options = options or BUILTIN_DEFAULTS["chat"]

        model = f"{self.provider}:{options.model}"
        logger.debug("Requesting completion from %s (%d chars)", model, len(prompt))
        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=self.build_messages(prompt, options),
                max_tokens=options.max_tokens,
                temperature=options.temperature,
            )
        except Exception as e:
            logger.error("Completion request failed: %s", e)
            raise CompletionError(str(e)) from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
