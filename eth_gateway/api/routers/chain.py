from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import PlainTextResponse
from loguru import logger

from eth_gateway.node import ChainClient, RemoteCallError, AddressValidationError


router = APIRouter(
    tags=["chain"],
    responses={
        500: {"description": "Upstream node call failed"}
    }
)


def get_chain_client(request: Request) -> ChainClient:
    return request.app.state.chain_client


@router.get(
    "/latest-block",
    summary="Get Latest Block Number",
    description="Returns the height of the current chain head as reported by the upstream node.",
    responses={
        200: {"description": "Latest block number as a decimal string"}
    }
)
def get_latest_block(chain_client: ChainClient = Depends(get_chain_client)):
    try:
        block_number = chain_client.latest_block_number()
    except RemoteCallError as e:
        logger.warning(f"Latest block lookup failed: {e}")
        return PlainTextResponse(str(e), status_code=500)

    return {"latest_block": str(block_number)}


@router.get(
    "/balance",
    summary="Get Account Balance",
    description=(
        "Returns the balance in wei of an address at the chain head.\n\n"
        "The address is a hex string, the 0x prefix is optional."
    ),
    responses={
        200: {"description": "Balance in wei as a decimal string"},
        400: {"description": "Missing or malformed address"}
    }
)
def get_balance(
    address: Optional[str] = Query(None, description="Account address", examples=["0x0000000000000000000000000000000000000000"]),
    chain_client: ChainClient = Depends(get_chain_client)
):
    if not address:
        return PlainTextResponse("Address is required", status_code=400)

    try:
        balance = chain_client.balance_of(address)
    except AddressValidationError as e:
        return PlainTextResponse(str(e), status_code=400)
    except RemoteCallError as e:
        logger.warning(f"Balance lookup failed for {address}: {e}")
        return PlainTextResponse(str(e), status_code=500)

    return {"balance": str(balance)}
