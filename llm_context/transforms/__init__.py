"""Context transformers."""
from llm_context.transforms.base import Pipeline, Transformer
from llm_context.transforms.image_handling import ImageHandling

__all__ = ["Pipeline", "Transformer", "ImageHandling"]
