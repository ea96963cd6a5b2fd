# ABOUTME: Weave GitOps add-on package initialization
# ABOUTME: Exposes the add-on, its data model and version information

"""
Weave GitOps add-on - installs and bootstraps a GitOps controller on a cluster.

=============================================================================
WHAT IS THIS PACKAGE?
=============================================================================

A cluster add-on for a Kubernetes provisioning framework. It:

1. INSTALLS the Weave GitOps core controller chart into a namespace
2. RESOLVES SSH credentials for a Git repository from AWS Secrets Manager
3. INSTALLS the application chart that points the controller at that
   repository, so the cluster starts reconciling against it

=============================================================================
PACKAGE STRUCTURE OVERVIEW
=============================================================================

weave_gitops_addon/
├── __init__.py          <- YOU ARE HERE: Package entry point
├── addon.py             <- WeaveGitOpsAddOn: deploy / post_deploy hooks
├── cluster.py           <- Host framework interfaces, helm-backed cluster
├── config.py            <- Settings (env vars, chart pins, secret store)
├── errors.py            <- AddOnError and its kinds
├── models.py            <- BootstrapRepository
├── runner.py            <- Standalone entry point (weave-gitops-addon)
├── secrets.py           <- Secret store interface, AWS adapter, resolver
└── utils/
    ├── logging.py       <- Structured logging with audit trails
    └── masking.py       <- Secret masking for log output
"""

from weave_gitops_addon.addon import WeaveGitOpsAddOn
from weave_gitops_addon.cluster import ClusterInfo, HelmChart, Team
from weave_gitops_addon.errors import AddOnError, ErrorKind
from weave_gitops_addon.models import BootstrapRepository

__version__ = "0.1.0"

__all__ = [
    "AddOnError",
    "BootstrapRepository",
    "ClusterInfo",
    "ErrorKind",
    "HelmChart",
    "Team",
    "WeaveGitOpsAddOn",
    "__version__",
]
