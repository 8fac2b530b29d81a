"""Strategies package initialization"""

# Import classes only when needed to avoid circular imports
# Use direct imports in your code: from strategies.volatility_flow import VolatilityHedgeFlow

__all__ = [
    'BaseOrderFlow',
    'FlowResult',
    'VolatilityHedgeFlow',
    'TraderHedgeFlow',
]
