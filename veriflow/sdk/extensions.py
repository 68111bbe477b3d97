"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

SDK Extension base class.

Extensions register callbacks on the :class:`HookRegistry` during
:meth:`install` and are activated via ``client.use(extension)``.

Example::

    from veriflow.sdk.extensions import VeriflowExtension
    from veriflow.sdk.hooks import HookRegistry

    class TenantHeader(VeriflowExtension):
        @property
        def name(self) -> str:
            return "tenant-header"

        @property
        def version(self) -> str:
            return "1.0.0"

        def install(self, hooks: HookRegistry) -> None:
            hooks.on_before_request(self._inject_header)

        def _inject_header(self, request):
            request.headers["X-Tenant-ID"] = "acme"
            return request
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from veriflow.sdk.hooks import HookRegistry


class VeriflowExtension(ABC):
    """Base class for all Veriflow SDK extensions.

    The SDK core never imports concrete extensions; users explicitly
    register them via ``client.use(extension)``.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique, human-readable extension name (e.g. ``"tenant-header"``)."""
        ...

    @property
    @abstractmethod
    def version(self) -> str:
        """SemVer version string (e.g. ``"1.0.0"``)."""
        ...

    @abstractmethod
    def install(self, hooks: HookRegistry) -> None:
        """Register callbacks on lifecycle hooks.

        This method is called exactly once when the extension is attached
        to a :class:`VeriflowClient` via ``.use()``.

        Args:
            hooks: The client's hook registry.
        """
        ...
