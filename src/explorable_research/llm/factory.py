"""LLM factory: chat model clients routed through OpenRouter."""

from langchain_openai import ChatOpenAI
import structlog

from .catalog import ModelConfig

logger = structlog.get_logger()

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class LLMFactory:
    """Creates ``ChatOpenAI`` instances for catalog models.

    One factory is built at startup with the gateway credentials; a fresh
    client is created per generation so per-request model config applies.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = OPENROUTER_BASE_URL,
        app_name: str = "Explorable Research",
        site_url: str | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.app_name = app_name
        self.site_url = site_url

    def create_llm(
        self,
        model_id: str,
        config: ModelConfig | None = None,
        max_retries: int = 2,
    ) -> ChatOpenAI:
        """Create a chat model client.

        Args:
            model_id: OpenRouter model id (e.g. "anthropic/claude-sonnet-4.5").
            config: Optional sampling overrides.
            max_retries: Automatic retries on failed requests.

        Raises:
            KeyError: If no OpenRouter API key is configured.
        """
        if not self.api_key:
            raise KeyError(
                "OPENROUTER_API_KEY environment variable not set. Please set it to use OpenRouter."
            )

        config = config or ModelConfig()

        headers = {"X-Title": self.app_name}
        if self.site_url:
            headers["HTTP-Referer"] = self.site_url

        kwargs: dict = {}
        if config.temperature is not None:
            kwargs["temperature"] = config.temperature
        if config.top_p is not None:
            kwargs["top_p"] = config.top_p
        if config.max_tokens is not None:
            kwargs["max_tokens"] = config.max_tokens
        if config.frequency_penalty is not None:
            kwargs["frequency_penalty"] = config.frequency_penalty
        if config.presence_penalty is not None:
            kwargs["presence_penalty"] = config.presence_penalty
        if config.top_k is not None:
            # Not an OpenAI parameter; OpenRouter reads it from the body
            kwargs["extra_body"] = {"top_k": config.top_k}

        logger.info("llm_created", model=model_id, max_retries=max_retries)

        return ChatOpenAI(
            base_url=self.base_url,
            api_key=self.api_key,
            model=model_id,
            max_retries=max_retries,
            default_headers=headers,
            **kwargs,
        )
