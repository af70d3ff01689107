from .settings import Settings, AgentConfig, ClientConfig, get_settings, reload_settings

__all__ = ["Settings", "AgentConfig", "ClientConfig", "get_settings", "reload_settings"]
