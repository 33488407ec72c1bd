"""AI image node: image generation from the node prompt plus upstream context."""
from ..engine.graph import ASPECT_RATIOS, DEFAULT_ASPECT_RATIO, ImageGenData, Node, NodeType
from ..providers.base import GenerationProvider
from .base import BaseNode, DataType, FieldSpec, NodeResult
from .registry import NodeRegistry


def build_image_prompt(prompt: str, context: str) -> str:
    if context:
        return f"{prompt}\n\n上下文信息: {context}"
    return prompt


def describe_image(prompt: str, aspect_ratio: str) -> str:
    """Text forwarded downstream in place of the image itself."""
    return f"[已生成图片，比例: {aspect_ratio}] {prompt}"


@NodeRegistry.register
class ImageGenNode(BaseNode):
    NODE_TYPE = NodeType.IMAGE_GEN
    DISPLAY_NAME = "AI 绘图"
    DESCRIPTION = "Generate an image from the prompt, using upstream text as context"

    @classmethod
    def FIELDS(cls):
        return {
            "prompt": FieldSpec(dtype=DataType.TEXT, default=""),
            "aspectRatio": FieldSpec(
                dtype=DataType.CHOICE, default=DEFAULT_ASPECT_RATIO, choices=list(ASPECT_RATIOS),
            ),
            "inputData": FieldSpec(dtype=DataType.TEXT, editable=False),
            "generatedImage": FieldSpec(dtype=DataType.IMAGE, editable=False),
        }

    async def execute(self, node: Node, input: str, provider: GenerationProvider) -> NodeResult:
        data: ImageGenData = node.data
        aspect_ratio = data.aspect_ratio or DEFAULT_ASPECT_RATIO
        image = await provider.generate_image(build_image_prompt(data.prompt, input), aspect_ratio)
        return NodeResult(
            changes={"generatedImage": image},
            output=describe_image(data.prompt, aspect_ratio),
        )
