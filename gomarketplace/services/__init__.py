# Services Module
from .money import multiply, round_money, to_decimal, to_float

__all__ = ["multiply", "round_money", "to_decimal", "to_float"]
