from .agent_process import AgentProcess, Callback

__all__ = ["AgentProcess", "Callback"]
