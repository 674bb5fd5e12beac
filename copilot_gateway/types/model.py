"""types for the Copilot model list"""

from typing_extensions import TypedDict


class ModelLimits(TypedDict, total=False):
    max_context_window_tokens: int
    max_output_tokens: int
    max_prompt_tokens: int
    max_inputs: int


class ModelSupports(TypedDict, total=False):
    tool_calls: bool
    parallel_tool_calls: bool
    dimensions: bool


class ModelCapabilities(TypedDict, total=False):
    """capabilities block; ``tokenizer`` names a tiktoken encoding"""
    family: str
    limits: ModelLimits
    object: str
    supports: ModelSupports
    tokenizer: str
    type: str


class Model(TypedDict, total=False):
    """a model as listed by the Copilot ``/models`` endpoint"""
    id: str
    name: str
    object: str
    vendor: str
    version: str
    preview: bool
    model_picker_enabled: bool
    capabilities: ModelCapabilities


class ModelsResponse(TypedDict):
    data: list[Model]
    object: str
