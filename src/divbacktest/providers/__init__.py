"""Data provider registry."""

from __future__ import annotations

from divbacktest.config import ProviderType
from divbacktest.providers.base import BaseDataProvider

# Lazy registry: classes are imported on demand so optional SDKs are only
# needed when their provider is used.
PROVIDER_CLASSES: dict[ProviderType, str] = {
    ProviderType.TWELVEDATA: "divbacktest.providers.twelvedata.TwelveDataProvider",
    ProviderType.POLYGON: "divbacktest.providers.polygon.PolygonProvider",
    ProviderType.MOCK: "divbacktest.providers.mock.MockProvider",
}


def create_provider(
    provider_type: ProviderType,
    **kwargs,
) -> BaseDataProvider:
    """Instantiate a provider by type, forwarding kwargs to its constructor."""
    import importlib

    dotted = PROVIDER_CLASSES[provider_type]
    module_path, cls_name = dotted.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls = getattr(module, cls_name)
    return cls(**kwargs)


__all__ = ["BaseDataProvider", "PROVIDER_CLASSES", "create_provider"]
