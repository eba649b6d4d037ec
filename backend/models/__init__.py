"""
Models package - immutable domain records
"""
from models.transaction import Transaction

__all__ = [
    'Transaction',
]
