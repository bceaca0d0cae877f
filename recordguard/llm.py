"""
LLM (Large Language Model) initialisation for reply generation.
"""

from langchain_openai import ChatOpenAI

from recordguard.config import MODEL_NAME, REPLY_TEMPERATURE, get_env


def init_llm() -> ChatOpenAI:
    """Initialise and return the ChatOpenAI instance."""
    _ = get_env("OPENAI_API_KEY")  # fail early if missing
    llm = ChatOpenAI(model=MODEL_NAME, temperature=REPLY_TEMPERATURE)
    print(f"[init] Using LLM model: {MODEL_NAME}")
    return llm
