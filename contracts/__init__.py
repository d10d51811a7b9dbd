"""Shared contracts — source of truth for all coachgate interfaces."""

from contracts.api import (
    ChatRequest,
    ChatResponse,
    Message,
    Role,
    StreamChunk,
    ToolCall,
    ToolChoice,
    TraceMeta,
)
from contracts.config import AgentConfig, GateConfig, ModelsConfig, RolloutConfig, StorageConfig
from contracts.envelope import (
    ErrorKind,
    ToolError,
    ToolFailure,
    ToolResult,
    ToolSuccess,
    tool_error,
    tool_success,
)
from contracts.model import ModelAdapter
from contracts.policy import PolicyDecision, PolicyEngine, PolicyVerdict
from contracts.store import DataStore, Transaction
from contracts.tool_sdk import BaseTool, ManifestEntry, NoParams, ToolContext, ToolParams, UserRole

__all__ = [
    # api
    "ChatRequest",
    "ChatResponse",
    "Message",
    "Role",
    "StreamChunk",
    "ToolCall",
    "ToolChoice",
    "TraceMeta",
    # config
    "AgentConfig",
    "GateConfig",
    "ModelsConfig",
    "RolloutConfig",
    "StorageConfig",
    # envelope
    "ErrorKind",
    "ToolError",
    "ToolFailure",
    "ToolResult",
    "ToolSuccess",
    "tool_error",
    "tool_success",
    # model
    "ModelAdapter",
    # policy
    "PolicyDecision",
    "PolicyEngine",
    "PolicyVerdict",
    # store
    "DataStore",
    "Transaction",
    # tool sdk
    "BaseTool",
    "ManifestEntry",
    "NoParams",
    "ToolContext",
    "ToolParams",
    "UserRole",
]
