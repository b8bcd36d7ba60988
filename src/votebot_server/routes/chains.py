"""Chain reference endpoints — read-only views of the loaded chains."""

from fastapi import APIRouter, Depends

from votebot_chains.catalog import ChainStore
from votebot_chains.models.chain import ChainDefinition

from votebot_server.dependencies import get_store

router = APIRouter(prefix="/chains", tags=["chains"])


@router.get("")
def list_chains(
    store: ChainStore = Depends(get_store),
) -> list[dict]:
    """Return a summary of every loaded chain."""
    return [
        {
            "name": chain.name,
            "description": chain.definition.description,
            "start": chain.start,
            "steps": len(chain.steps),
        }
        for chain in (store.get_chain(name) for name in store.chain_names())
    ]


@router.get("/{name}")
def get_chain(
    name: str,
    store: ChainStore = Depends(get_store),
) -> ChainDefinition:
    """Return a chain's full definition.  Raises 404 for unknown names."""
    if name not in store.chain_names():
        raise ValueError(f"Chain not found: {name}")
    return store.get_chain(name).definition
