"""AppWeaver-AI: conversational schema builder with record automations."""

__version__ = "0.1.0"
