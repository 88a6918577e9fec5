"""Raw id issuing and decoding routes."""

from fastapi import APIRouter, Depends, Path

from flakegen.generator import BIT_LEN_MACHINE_ID, BIT_LEN_SEQUENCE, BIT_LEN_TIME
from ui.auth import verify_basic_auth

MAX_ID = (1 << (BIT_LEN_TIME + BIT_LEN_SEQUENCE + BIT_LEN_MACHINE_ID)) - 1

router = APIRouter(prefix="/api/v1/ids", tags=["ids"])

# Set by app.py
_generator = None


def init(generator):
    global _generator
    _generator = generator


@router.post("", status_code=201)
async def issue_id(username=Depends(verify_basic_auth)):
    """Issue a fresh id and return it with its parts (requires basic auth)."""
    # next_id blocks for at most one 10 ms unit when the sequence is exhausted
    return _generator.decompose(_generator.next_id())


@router.get("/{flake_id}")
async def decompose_id(flake_id: int = Path(ge=0, le=MAX_ID), username=Depends(verify_basic_auth)):
    """Split an id into elapsed time, sequence, machine id and timestamp."""
    return _generator.decompose(flake_id)
