"""
LLM Client Abstraction
Single entry point for all AI calls in the BSR Estimator.
Primary: Google Gemini 2.5 Flash
Fallback: Groq LLaMA 3.1 70B
Model names come from app.config (LLM_PRIMARY_MODEL / LLM_FALLBACK_MODEL).
"""
import logging

import litellm

from app.config import LLM_FALLBACK_MODEL, LLM_MAX_TOKENS, LLM_PRIMARY_MODEL, LLM_TEMPERATURE

logger = logging.getLogger("bsr-llm")

# Suppress litellm verbose logging
litellm.set_verbose = False


async def complete(
    messages: list,
    temperature: float = LLM_TEMPERATURE,
    json_mode: bool = False,
    max_tokens: int = LLM_MAX_TOKENS,
) -> str:
    """
    Call the primary LLM. Falls back to the secondary model on rate limit or error.
    Returns the response content string.
    """
    kwargs = {
        "messages": messages,
        "temperature": temperature,
        "max_tokens": max_tokens,
    }
    if json_mode:
        kwargs["response_format"] = {"type": "json_object"}

    try:
        response = await litellm.acompletion(model=LLM_PRIMARY_MODEL, **kwargs)
        return response.choices[0].message.content
    except litellm.RateLimitError:
        logger.warning(f"{LLM_PRIMARY_MODEL} rate limit hit — falling back to {LLM_FALLBACK_MODEL}")
    except litellm.AuthenticationError:
        logger.warning(f"{LLM_PRIMARY_MODEL} auth error — falling back to {LLM_FALLBACK_MODEL}")
    except Exception as e:
        logger.warning(f"{LLM_PRIMARY_MODEL} error ({type(e).__name__}: {e}) — falling back")

    try:
        fallback_kwargs = {k: v for k, v in kwargs.items() if k != "response_format"}
        if json_mode:
            messages = list(fallback_kwargs["messages"])
            if messages and messages[0]["role"] == "system":
                messages[0] = {
                    **messages[0],
                    "content": messages[0]["content"] + "\n\nIMPORTANT: Respond with valid JSON only.",
                }
            else:
                messages = [{"role": "system", "content": "You must respond with valid JSON only."}] + messages
            fallback_kwargs["messages"] = messages
        response = await litellm.acompletion(model=LLM_FALLBACK_MODEL, **fallback_kwargs)
        return response.choices[0].message.content
    except Exception as e:
        logger.error(f"Both LLMs failed. Fallback error: {e}")
        raise RuntimeError(f"All LLM providers failed. Last error: {e}")


def get_system_prompt(role: str) -> str:
    """Standard system prompts for different AI roles."""
    prompts = {
        "estimator": (
            "You are a Senior Quantity Surveyor and Cost Estimator for building and civil works in Doha, Qatar. "
            "You prepare Breakdowns of Schedule of Rates (BSR) for villa, commercial and infrastructure projects, "
            "pricing materials, manpower, plant and small tools in QAR at current local market rates. "
            "You follow standard BOQ measurement units and always return structured, precise data."
        ),
        "rate_analyst": (
            "You are a construction HR and procurement analyst in Doha, Qatar. "
            "You know typical salaries, allowances, visa and flight costs for site trades, "
            "and current supplier prices for common building materials, all in QAR."
        ),
    }
    return prompts.get(role, prompts["estimator"])
