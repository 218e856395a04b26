from typing import Annotated

from fastapi import APIRouter, Depends

from .dependencies import get_embedder, get_provider_chain
from ..embeddings.embedder import Embedder
from ..llm.chain import ProviderChain

router = APIRouter(tags=["health"])


@router.get("/health")
def health(
    chain: Annotated[ProviderChain, Depends(get_provider_chain)],
    embedder: Annotated[Embedder, Depends(get_embedder)],
):
    return {
        "status": "ok",
        "providers": [p.name for p in chain.providers],
        "embeddings": embedder.available,
    }
