"""
Member endpoints
"""

from fastapi import APIRouter, HTTPException, Depends, status

from .dependencies import LendingSystem, get_lending_system, get_operator, to_http_error
from .schemas import RegisterMemberRequest, ChangeMemberStatusRequest
from ..context import Operator
from ..exceptions import LendingError


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def register_member(
    request: RegisterMemberRequest,
    system: LendingSystem = Depends(get_lending_system),
    operator: Operator = Depends(get_operator)
):
    """Register a cooperative member"""
    try:
        member = system.service.members.register_member(
            member_number=request.member_number,
            first_name=request.first_name,
            last_name=request.last_name,
            operator=operator,
            member_status=request.member_status,
            membership_date=request.membership_date
        )
    except LendingError as e:
        raise to_http_error(e)
    return member.to_dict()


@router.get("/{member_id}")
async def get_member(
    member_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    member = system.service.members.get_member(member_id)
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")
    return member.to_dict()


@router.post("/{member_id}/status")
async def change_member_status(
    member_id: str,
    request: ChangeMemberStatusRequest,
    system: LendingSystem = Depends(get_lending_system),
    operator: Operator = Depends(get_operator)
):
    try:
        member = system.service.members.change_status(member_id, request.member_status, operator)
    except LendingError as e:
        raise to_http_error(e)
    return member.to_dict()
