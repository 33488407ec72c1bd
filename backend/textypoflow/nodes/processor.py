"""AI processor node: text generation under a system instruction."""
from ..engine.graph import Node, NodeType, ProcessorData
from ..providers.base import GenerationProvider
from .base import BaseNode, DataType, FieldSpec, NodeResult
from .registry import NodeRegistry


@NodeRegistry.register
class ProcessorNode(BaseNode):
    NODE_TYPE = NodeType.PROCESSOR
    DISPLAY_NAME = "AI 处理器"
    DESCRIPTION = "Transform incoming text with the text model and a system instruction"

    @classmethod
    def FIELDS(cls):
        return {
            "systemInstruction": FieldSpec(dtype=DataType.TEXT, default=""),
            "inputData": FieldSpec(dtype=DataType.TEXT, editable=False),
            "outputData": FieldSpec(dtype=DataType.TEXT, editable=False),
        }

    async def execute(self, node: Node, input: str, provider: GenerationProvider) -> NodeResult:
        data: ProcessorData = node.data
        result = await provider.generate_text(input, data.system_instruction)
        return NodeResult(changes={"outputData": result}, output=result)
