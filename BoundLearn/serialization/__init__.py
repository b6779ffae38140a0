from .model_serializer import save_model
from .model_serializer import load_model
from .model_serializer import encode_blocks
from .model_serializer import decode_blocks

__all__ = [
    "save_model",
    "load_model",
    "encode_blocks",
    "decode_blocks",
]
