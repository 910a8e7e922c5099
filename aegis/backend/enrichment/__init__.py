from .client import OllamaGateway
from .gateway import EnrichmentError, EnrichmentGateway, NullGateway

__all__ = ["EnrichmentError", "EnrichmentGateway", "NullGateway", "OllamaGateway"]
