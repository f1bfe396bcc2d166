from convoflow.config.loader import ConfigLoader
from convoflow.config.models import FlowFileConfig, FlowSettings

__all__ = ["ConfigLoader", "FlowFileConfig", "FlowSettings"]
