"""Preset processor templates: ready-made system instructions for common tasks.

A preset's instruction is its task prompt followed by a shared output
guideline (plain text or single-file HTML), both read from ``prompts/``.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..engine.graph import NodeType

PROMPTS_DIR = Path(__file__).parent / "prompts"

BASE_TEXT = "common-text.txt"
BASE_HTML = "common-html.txt"


@dataclass(frozen=True)
class Preset:
    id: str
    label: str
    description: str
    category: str
    prompt_file: str
    base_file: str
    node_type: NodeType = NodeType.PROCESSOR

    def instruction(self) -> str:
        """Task prompt and output guideline joined by a blank line.

        Empty when either file is empty, so a broken preset yields a plain
        processor rather than half an instruction.
        """
        prompt = (PROMPTS_DIR / self.prompt_file).read_text(encoding="utf-8").strip()
        base = (PROMPTS_DIR / self.base_file).read_text(encoding="utf-8").strip()
        if not prompt or not base:
            return ""
        return f"{prompt}\n\n{base}"

    def node_data(self) -> dict[str, Any]:
        """Payload overrides for a node created from this preset."""
        return {"label": self.label, "systemInstruction": self.instruction()}

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "description": self.description,
            "category": self.category,
            "node_type": self.node_type.value,
        }


PRESETS: tuple[Preset, ...] = (
    Preset("polish", "智能润色", "优化文本的语气、语法与流畅度", "效率工具", "polish.txt", BASE_TEXT),
    Preset("summarize", "核心摘要", "快速提取长文本的关键信息", "效率工具", "summarize.txt", BASE_TEXT),
    Preset("translate", "中英互译", "专业、地道的双语互译助手", "效率工具", "translate.txt", BASE_TEXT),
    Preset("card", "社交卡片", "生成适合社媒分享的精致卡片", "视觉创作", "card.txt", BASE_HTML),
    Preset("poster", "海报设计", "极具视觉冲击力的活动海报", "视觉创作", "poster.txt", BASE_HTML),
    Preset("card-cover", "封面设计", "文章或视频的封面图生成", "视觉创作", "cardCover.txt", BASE_HTML),
    Preset("info-density", "信息图表", "高密度数据的可视化排版", "视觉创作", "infoDensity.txt", BASE_HTML),
)


def get_preset(preset_id: str) -> Preset:
    for preset in PRESETS:
        if preset.id == preset_id:
            return preset
    raise KeyError(f"Unknown preset: {preset_id}")


def preset_categories() -> list[dict[str, Any]]:
    """Presets grouped by category, in catalogue order."""
    categories: dict[str, list[dict[str, Any]]] = {}
    for preset in PRESETS:
        categories.setdefault(preset.category, []).append(preset.to_dict())
    return [{"title": title, "items": items} for title, items in categories.items()]
