from .providers import HttpProbeConnectivityProvider, ManualConnectivityProvider

__all__ = ["HttpProbeConnectivityProvider", "ManualConnectivityProvider"]
