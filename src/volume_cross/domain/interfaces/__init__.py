"""
Domain Interfaces - Ports between domain and infrastructure
"""

from .exchange import IExchangeGateway

__all__ = ['IExchangeGateway']
