# app/clients/schemas.py

"""
원격 서비스와 주고받는 페이로드의 Pydantic 모델입니다.
원격 응답에 추가 필드가 있어도 무시합니다.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class RemoteUserCreate(BaseModel):
    """auth 서비스의 사용자 등록 요청입니다. 비밀번호 해싱은 auth 서비스가 수행합니다."""
    username: str
    password: str
    email: Optional[str] = None
    gender: str
    first_name: str
    last_name: str
    center_id: int
    roles: List[str]


class RemoteUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    username: str
    email: Optional[str] = None
    gender: Optional[str] = None
    first_name: str
    last_name: str
    center_id: Optional[int] = None
    enabled: bool = True
    roles: List[str] = []


class RemoteCenter(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    city: Optional[str] = None
    address: Optional[str] = None
