"""Error hierarchy shared by agents, tools and model clients."""

from __future__ import annotations


class RoundtableError(Exception):
    def __init__(self, code: str, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.cause = cause


class ConfigError(RoundtableError):
    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__("CONFIG_ERROR", message, cause)


class LLMError(RoundtableError):
    def __init__(
        self,
        provider: str,
        message: str,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__("LLM_ERROR", message, cause)
        self.provider = provider
        self.status_code = status_code


class ToolError(RoundtableError):
    def __init__(
        self, code: str, tool_name: str, message: str, cause: Exception | None = None
    ) -> None:
        super().__init__(code, message, cause)
        self.tool_name = tool_name


class ToolRequestError(ToolError):
    """The request is malformed or names a tool that is not available."""

    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__("TOOL_REQUEST_INVALID", tool_name, message)


class ToolParameterError(ToolError):
    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__("TOOL_PARAMETER_INVALID", tool_name, message)
