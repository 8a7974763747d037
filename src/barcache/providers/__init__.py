"""Bar provider registry."""

from __future__ import annotations

import importlib

from barcache.config import ProviderType
from barcache.providers.base import BaseBarProvider

# Lazy registry: classes are imported on demand so ``requests`` is only
# needed when a remote provider is actually used.
PROVIDER_CLASSES: dict[ProviderType, str] = {
    ProviderType.ALPHAVANTAGE: "barcache.providers.alphavantage.AlphaVantageProvider",
    ProviderType.MOCK: "barcache.providers.mock.MockProvider",
}


def create_provider(
    provider_type: ProviderType,
    **kwargs,
) -> BaseBarProvider:
    """Instantiate a provider by type, forwarding kwargs to its constructor."""
    dotted = PROVIDER_CLASSES[provider_type]
    module_path, cls_name = dotted.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls = getattr(module, cls_name)
    return cls(**kwargs)


__all__ = ["BaseBarProvider", "PROVIDER_CLASSES", "create_provider"]
