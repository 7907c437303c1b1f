"""Prompts sent to the completion provider.

The summary instruction is user-configurable (``Settings.custom_prompt``) and
carries a ``{length}`` placeholder; the tag instruction is fixed.
"""

# ── System framing ────────────────────────────────────────────────────

SYSTEM_PROMPT = "你是一个专业的文章摘要生成助手，请根据用户提供的内容生成简洁、准确的摘要。"

# ── Summary (default template) ────────────────────────────────────────

LENGTH_PLACEHOLDER = "{length}"

DEFAULT_SUMMARY_PROMPT = "请为以下内容生成一个简洁的摘要，不超过{length}字："

# ── Tags ──────────────────────────────────────────────────────────────

TAG_PROMPT = (
    "请为以下内容生成3到5个标签，每个标签1到4个字。"
    "只输出标签本身，标签之间用逗号分隔，不要编号或解释："
)
