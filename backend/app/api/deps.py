from typing import Annotated

from fastapi import Depends, Request

from app.core.gateway.auth import CredentialChecker
from app.core.gateway.resolver import RouteTable
from app.core.pool import PoolManager
from app.engines.sql.executor import QueryExecutor

# Built once by the application lifespan and kept on app.state.


def get_executor(request: Request) -> QueryExecutor:
    return request.app.state.executor


def get_route_table(request: Request) -> RouteTable | None:
    return getattr(request.app.state, "route_table", None)


def get_pool(request: Request) -> PoolManager:
    return request.app.state.pool


def get_credential_checker(request: Request) -> CredentialChecker | None:
    """None when authentication is disabled; every caller is then anonymous."""
    return getattr(request.app.state, "credential_checker", None)


ExecutorDep = Annotated[QueryExecutor, Depends(get_executor)]
RouteTableDep = Annotated[RouteTable | None, Depends(get_route_table)]
PoolDep = Annotated[PoolManager, Depends(get_pool)]
CredentialCheckerDep = Annotated[
    CredentialChecker | None, Depends(get_credential_checker)
]
