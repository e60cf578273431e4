from .adapters import (
    PolicyAgentAdapter,
    ValueAgentAdapter,
    build_default_policy_agent,
    build_default_value_agent,
)
from .codec import POLICY_CODEC, VALUE_CODEC, StateCodec
from .model import PolicyNetwork, PolicyNetworkConfig, ValueNetwork, ValueNetworkConfig
from .policy_agent import PolicyAgent, PolicyAgentConfig
from .replay import ExperienceBuffer
from .storage import ModelStore
from .value_agent import ValueAgent, ValueAgentConfig

__all__ = [
    "PolicyAgentAdapter",
    "ValueAgentAdapter",
    "build_default_policy_agent",
    "build_default_value_agent",
    "POLICY_CODEC",
    "VALUE_CODEC",
    "StateCodec",
    "PolicyNetwork",
    "PolicyNetworkConfig",
    "ValueNetwork",
    "ValueNetworkConfig",
    "PolicyAgent",
    "PolicyAgentConfig",
    "ExperienceBuffer",
    "ModelStore",
    "ValueAgent",
    "ValueAgentConfig",
]
