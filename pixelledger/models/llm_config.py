"""
LLM Provider Configuration Models

An LLMConfig names an endpoint and a model. It never holds the API key:
keys are kept by LLMConfigManager in a separate key store so that the
config file can be shared or backed up safely.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LLMProviderType(str, Enum):
    """Known providers. All but Gemini speak the OpenAI chat/completions API."""
    OPENAI = "OpenAI"
    DEEPSEEK = "DeepSeek"
    QWEN = "Qwen"
    ERNIE = "ERNIE"
    GLM = "GLM"
    MOONSHOT = "Moonshot"
    YI = "Yi"
    DOUBAO = "Doubao"
    BAICHUAN = "Baichuan"
    MINIMAX = "MiniMax"
    SILICONFLOW = "SiliconFlow"
    OLLAMA = "Ollama"
    GEMINI = "Gemini"
    CUSTOM = "Custom"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES.get(self, self.value)

    @property
    def is_openai_compatible(self) -> bool:
        return self != LLMProviderType.GEMINI


_DISPLAY_NAMES = {
    LLMProviderType.QWEN: "通义千问",
    LLMProviderType.ERNIE: "文心一言",
    LLMProviderType.GLM: "智谱AI",
    LLMProviderType.MOONSHOT: "月之暗面",
    LLMProviderType.YI: "零一万物",
    LLMProviderType.DOUBAO: "豆包",
    LLMProviderType.BAICHUAN: "百川智能",
    LLMProviderType.CUSTOM: "自定义",
}

# provider -> (base_url, model_name)
_PRESETS: dict[LLMProviderType, tuple[str, str]] = {
    LLMProviderType.OPENAI: ("https://api.openai.com/v1", "gpt-4o"),
    LLMProviderType.DEEPSEEK: ("https://api.deepseek.com", "deepseek-chat"),
    LLMProviderType.QWEN: ("https://dashscope.aliyuncs.com/compatible-mode/v1", "qwen-plus"),
    LLMProviderType.ERNIE: (
        "https://aip.baidubce.com/rpc/2.0/ai_custom/v1/wenxinworkshop/chat",
        "ernie-bot-4",
    ),
    LLMProviderType.GLM: ("https://open.bigmodel.cn/api/paas/v4", "glm-4"),
    LLMProviderType.MOONSHOT: ("https://api.moonshot.cn/v1", "moonshot-v1-8k"),
    LLMProviderType.YI: ("https://api.lingyiwanwu.com/v1", "yi-34b-chat"),
    LLMProviderType.DOUBAO: ("https://ark.cn-beijing.volces.com/api/v3", "doubao-pro-4k"),
    LLMProviderType.BAICHUAN: ("https://api.baichuan-ai.com/v1", "baichuan2-turbo"),
    LLMProviderType.MINIMAX: ("https://api.minimax.chat/v1", "abab5.5-chat"),
    LLMProviderType.SILICONFLOW: ("https://api.siliconflow.cn/v1", "deepseek-ai/DeepSeek-V3"),
    LLMProviderType.OLLAMA: ("http://localhost:11434/v1", "llama3"),
    LLMProviderType.GEMINI: ("https://generativelanguage.googleapis.com", "gemini-1.5-flash"),
    LLMProviderType.CUSTOM: ("https://api.openai.com/v1", "gpt-3.5-turbo"),
}


class LLMConfig(BaseModel):
    """A saved LLM endpoint (without credentials)."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=100)
    provider_type: LLMProviderType
    base_url: str = Field(..., min_length=1)
    model_name: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @classmethod
    def preset(cls, provider: LLMProviderType) -> "LLMConfig":
        """A fresh config pre-filled with the provider's usual endpoint and model."""
        base_url, model_name = _PRESETS[provider]
        return cls(
            name=provider.display_name,
            provider_type=provider,
            base_url=base_url,
            model_name=model_name,
        )
