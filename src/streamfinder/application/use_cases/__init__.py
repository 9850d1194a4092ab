from .detail_search import SearchOrchestrator

__all__ = ["SearchOrchestrator"]
