"""Core package initialization"""

# Import classes only when needed to avoid circular imports
# Use direct imports in your code: from core.limit_order import LimitOrder

__all__ = [
    'ChainClient',
    'Extension',
    'ExtensionBuilder',
    'LimitOrder',
    'MakerTraits',
    'TakerTraits',
    'SignedOrder',
]
