from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class CompletionRequest(BaseModel):
    """Body of a llama.cpp POST /completion request."""

    prompt: Union[List[int], str]
    n_predict: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    stop: Optional[List[str]] = None
    cache_prompt: Optional[bool] = None
    grammar: Optional[str] = None
    stream: bool = False

    def to_payload(self) -> dict:
        return self.model_dump(exclude_none=True)


class CompletionResponse(BaseModel):
    """The fields of a llama.cpp /completion response the supervisor reads."""
    model_config = ConfigDict(extra="ignore", protected_namespaces=())

    content: str = ""
    model: str
    stop: bool = False
    stopped_eos: bool = False
    stopped_limit: bool = False
    stopped_word: bool = False
    stopping_word: str = ""
    tokens_cached: int = 0
    tokens_evaluated: int = 0
    truncated: bool = False
    timings: Dict[str, float] = Field(default_factory=dict)
    generation_settings: Dict[str, Any] = Field(default_factory=dict)
