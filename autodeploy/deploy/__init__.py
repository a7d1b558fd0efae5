"""Target resolution and playbook invocation."""

from autodeploy.deploy.invoker import PlaybookInvoker
from autodeploy.deploy.locks import TagLocks
from autodeploy.deploy.models import InvocationResult, Outcome
from autodeploy.deploy.targets import TargetResolver

__all__ = [
    "InvocationResult",
    "Outcome",
    "PlaybookInvoker",
    "TagLocks",
    "TargetResolver",
]
