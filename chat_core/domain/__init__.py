"""领域层模型与协议。

包含：
- models: ChatMessage / Attachment / StreamStats / ExchangeResult 模型。
- conversation: 会话历史与 ConversationTracker（含 in-flight 守卫）。
- exceptions: 业务异常类型定义。
"""
