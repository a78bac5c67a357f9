"""
Resource-topology compiler for the book tracking application.

Declarations of auth pools, tables, functions, API routes, alarms and grants
are validated, resolved and ordered into a provisioning plan.
"""

from .compiler import CompilerState, CompileResult, TopologyCompiler, compile_topology
from .declarations import (
    CompiledPlan,
    GrantEdge,
    HttpMethod,
    OperationKind,
    Permission,
    ProvisioningOperation,
    ResourceKind,
    ResourceNode,
)
from .loader import TopologyDocument, load_topology
from .permissions import PermissionBinder
from .registry import ResourceRegistry
from .resolver import ReferenceResolver

__all__ = [
    "CompiledPlan",
    "CompilerState",
    "CompileResult",
    "GrantEdge",
    "HttpMethod",
    "OperationKind",
    "Permission",
    "PermissionBinder",
    "ProvisioningOperation",
    "ReferenceResolver",
    "ResourceKind",
    "ResourceNode",
    "ResourceRegistry",
    "TopologyCompiler",
    "TopologyDocument",
    "compile_topology",
    "load_topology",
]
