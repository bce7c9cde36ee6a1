"""VKS Connect (vksconnect).

Connect a workstation to a VKS workload cluster behind a VCF Automation session.
"""

__version__ = "0.1.0"
__author__ = "Platform Engineering Team"
__license__ = "Apache-2.0"
