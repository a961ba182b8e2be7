"""
Shim dispatch for hygeia.

Every command name in ``<home>/shims`` is a hard link to the hygeia
launcher; :class:`ShimDispatcher` turns an invocation under such a name into
a run of the real command from the selected toolchain.
"""

from hygeia.shim.dispatcher import DispatchResult, ShimDispatcher, ShimInvocation

__all__ = ["DispatchResult", "ShimDispatcher", "ShimInvocation"]
