"""Prompt text files for the LLM collaborators and a loader for them."""
from functools import lru_cache
from pathlib import Path
import typing as t

PROMPTS_DIR = Path(__file__).resolve().parent


def available_prompts(prompts_dir: t.Optional[Path] = None) -> list[str]:
    """Names of the prompts shipped in ``prompts_dir`` (without .txt)."""
    return sorted(path.stem for path in (prompts_dir or PROMPTS_DIR).glob("*.txt"))


@lru_cache(maxsize=None)
def load_prompt(prompt_name: str, prompts_dir: t.Optional[Path] = None) -> str:
    """
    Load a prompt from a text file.

    Args:
        prompt_name: Name of the prompt file (without .txt extension)
        prompts_dir: Optional directory to read from. Defaults to this package.

    Returns:
        The content of the prompt file.

    Raises:
        FileNotFoundError: If no such prompt exists.
    """
    prompt_file = Path(prompts_dir or PROMPTS_DIR) / f"{prompt_name}.txt"

    if not prompt_file.is_file():
        raise FileNotFoundError(
            f"Prompt file not found: {prompt_file}. "
            f"Available prompts: {available_prompts(prompt_file.parent)}"
        )

    return prompt_file.read_text(encoding="utf-8")
