from fastapi import APIRouter, Depends

from app.auth.deps import get_current_member
from app.models.member import Member
from app.schemas.member import WhoAmIResponse

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/whoami", response_model=WhoAmIResponse)
def whoami(member: Member = Depends(get_current_member)) -> WhoAmIResponse:
    return WhoAmIResponse(
        id=member.id,
        student_id=member.student_id,
        full_name=member.full_name,
        email=member.email,
        organization_id=member.organization_id,
        is_officer=member.is_officer,
        can_scan=member.can_scan,
    )
