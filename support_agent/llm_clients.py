# support_agent/llm_clients.py
from __future__ import annotations

from google import genai
from google.genai import types

from support_agent.config import require_env


class GeminiClient:
    def __init__(self, model: str, tools: list[types.Tool]):
        api_key = require_env("GEMINI_API_KEY")
        self.client = genai.Client(api_key=api_key)
        self.model = model
        self.tools = tools

    def generate(self, contents: list[types.Content]) -> types.GenerateContentResponse:
        return self.client.models.generate_content(
            model=self.model,
            contents=contents,
            config=types.GenerateContentConfig(
                tools=self.tools,
                temperature=0,
            ),
        )
