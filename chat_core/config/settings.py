"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_GREETING = "Hello! I'm an LLM chat app. How can I help you today?"
DEFAULT_FALLBACK_ERROR = "Sorry, there was an error processing your request."


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("CHAT_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
        Path(__file__).resolve().parents[1] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """客户端配置（使用 Pydantic）。"""

    # ---- 中继服务端 ----
    api_base_url: str = Field(
        default="http://127.0.0.1:8787",
        description="聊天中继服务的基础 URL",
    )
    chat_path: str = Field(default="/api/chat", description="聊天接口路径")
    http_timeout: float = Field(default=30.0, ge=1.0, description="连接/写入超时时间（秒）")
    stream_read_timeout: Optional[float] = Field(
        default=None,
        description="流式读取超时（秒），None 表示不限制",
    )

    # ---- 流式解析 ----
    stream_reassemble_lines: bool = Field(
        default=False,
        description="是否缓存跨 chunk 的半行，在下一个 chunk 到达后拼接再解析",
    )

    # ---- 会话 ----
    system_prompt: Optional[str] = Field(
        default=None,
        description="发送前补充的 system 消息；会话中已有 system 消息时不再补充",
    )
    greeting: str = Field(default=DEFAULT_GREETING, description="会话开场白，空字符串表示不显示")
    fallback_error_text: str = Field(
        default=DEFAULT_FALLBACK_ERROR,
        description="请求失败时展示给用户的助手消息",
    )

    # ---- 日志 ----
    log_dir: str = Field(default="logs", description="日志目录")
    log_level: str = Field(default="INFO", description="日志级别")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("chat_path")
    @classmethod
    def validate_chat_path(cls, v: str) -> str:
        if not v.startswith("/"):
            return "/" + v
        return v

    @field_validator("api_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v!r}")
        return level

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )

    @property
    def chat_url(self) -> str:
        return f"{self.api_base_url}{self.chat_path}"


settings = Settings()
