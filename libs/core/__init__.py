__all__ = [
    "models",
    "prompts",
    "resume_store",
    "llm_provider",
    "logging",
]
