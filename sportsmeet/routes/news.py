from fastapi import APIRouter, Depends

from sportsmeet.routes.deps import get_current_user
from sportsmeet.services.news import fetch_sports_headlines

router = APIRouter(prefix="/news", tags=["news"], dependencies=[Depends(get_current_user)])


@router.get("")
async def sports_news():
    return await fetch_sports_headlines()
