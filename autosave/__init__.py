"""
autosave — automated-savings policy layer for programmable payment accounts

Core imports are lazily loaded so importing a submodule does not pull in
the whole package. For direct module access, import from submodules:

    from autosave.roundup import RoundUpPolicyEngine
    from autosave.subscriptions import SubscriptionLedger
    from autosave.pipeline import TransferPipeline
"""

__version__ = "0.1.0"

_LAZY = {
    "RoundUpPolicyEngine": ("roundup", "RoundUpPolicyEngine"),
    "SlotPolicy": ("roundup", "SlotPolicy"),
    "SubscriptionLedger": ("subscriptions", "SubscriptionLedger"),
    "TransferPipeline": ("pipeline", "TransferPipeline"),
    "SecondaryFailurePolicy": ("pipeline", "SecondaryFailurePolicy"),
    "TransferInstruction": ("instructions", "TransferInstruction"),
    "load_config": ("config", "load_config"),
}


def __getattr__(name):
    """Lazy module loading."""
    if name in _LAZY:
        import importlib

        module_name, attr = _LAZY[name]
        module = importlib.import_module(f".{module_name}", __name__)
        return getattr(module, attr)
    raise AttributeError(f"module 'autosave' has no attribute {name!r}")


__all__ = list(_LAZY)
