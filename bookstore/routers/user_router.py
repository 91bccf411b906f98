from fastapi import APIRouter, Depends

from bookstore.core.dependencies import get_current_user
from bookstore.models.user import User, home_path_for
from bookstore.schemas.user import MeData, MeResponse, UserProfile

router = APIRouter(tags=["用户"])


@router.get("/me", response_model=MeResponse, summary="当前用户")
async def read_me(current_user: User = Depends(get_current_user)):
    """返回当前用户资料以及按角色决定的首页路径"""
    return {
        "success": True,
        "data": MeData(
            profile=UserProfile.model_validate(current_user),
            home_path=home_path_for(current_user.role),
        )
    }
