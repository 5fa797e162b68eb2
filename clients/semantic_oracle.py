# clients/semantic_oracle.py
import base64
import json
import logging
from typing import Any, Dict, Optional

from services.llm_factory import LLMFactory, LLMProvider
from services.schemas import tool_name

logger = logging.getLogger(__name__)


class OracleError(Exception):
    """Raised when the oracle call fails (network, auth, malformed tool arguments)."""
    pass


class SemanticOracle:
    """
    Thin function-calling wrapper around an OpenAI-compatible client.

    `invoke` offers exactly one tool and returns that tool's parsed
    arguments, or None when the model answered in free text instead.
    """

    def __init__(self, client, default_model: str, temperature: float = 0.2):
        self.client = client
        self.default_model = default_model
        self.temperature = temperature

    @classmethod
    def from_provider(cls, provider: str = LLMProvider.OPENAI, **kwargs) -> "SemanticOracle":
        client = LLMFactory.build_client(provider, **kwargs)
        return cls(client, default_model=LLMFactory.get_default_model(provider))

    def close(self) -> None:
        close = getattr(self.client, "close", None)
        if callable(close):
            close()

    @staticmethod
    def _document_part(filename: str, content: bytes) -> Dict[str, Any]:
        encoded = base64.b64encode(content).decode("ascii")
        return {
            "type": "file",
            "file": {
                "filename": filename,
                "file_data": f"data:application/pdf;base64,{encoded}",
            },
        }

    def invoke(
        self,
        instructions: str,
        tool: Dict[str, Any],
        document: Optional[Any] = None,
        model: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        `document` is anything with `name` and `content` (raw PDF bytes);
        when given it is attached next to the instructions.
        Raises:
            OracleError: If the API call fails or the tool arguments are not valid JSON.
        """
        expected = tool_name(tool)

        if document is not None:
            content = [
                {"type": "text", "text": instructions},
                self._document_part(document.name, document.content),
            ]
        else:
            content = instructions

        try:
            response = self.client.chat.completions.create(
                model=model or self.default_model,
                messages=[{"role": "user", "content": content}],
                tools=[tool],
                tool_choice="auto",
                temperature=self.temperature,
            )
        except Exception as e:
            raise OracleError(f"LLM API error: {e}") from e

        if not response.choices:
            raise OracleError("LLM returned no choices")

        message = response.choices[0].message
        tool_calls = getattr(message, "tool_calls", None) or []
        if not tool_calls:
            text = (message.content or "").strip()
            logger.info(f"No function call in response: {text[:200]}")
            return None

        call = tool_calls[0]
        if call.function.name != expected:
            logger.warning(f"Function call is not {expected}: {call.function.name}")
            return None

        try:
            args = json.loads(call.function.arguments or "{}")
        except json.JSONDecodeError as e:
            raise OracleError(f"Failed to parse {expected} arguments: {e}") from e

        if not isinstance(args, dict):
            raise OracleError(f"{expected} arguments are not a JSON object")
        return args
