# flake8: noqa
# scripts/create_admin.py

import asyncio
import typer

from app.core.database import AsyncSessionLocal
from app.core.security import get_password_hash
from app.domains.auth import crud as auth_crud
from app.domains.auth import models as auth_models
from app.domains.auth.schemas import GenderType, RoleName

cli = typer.Typer()


async def create_admin_user(
    *,
    username: str,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    gender: GenderType,
    center_id: int,
) -> None:
    """
    기본 역할(ADMIN, DOCTOR)을 준비하고 ADMIN 역할의 사용자를 생성합니다.
    의료센터 존재 여부는 확인하지 않습니다 (admin 서비스가 아직 비어 있을 수 있습니다).
    """
    async with AsyncSessionLocal() as db:
        roles = await auth_crud.role.ensure(db, names=[role.value for role in RoleName])
        admin_role = next(role for role in roles if role.name == RoleName.ADMIN.value)

        if await auth_crud.user.get_by_username(db, username=username):
            print(f"오류: 이미 존재하는 사용자명입니다: {username}")
            return
        if await auth_crud.user.get_by_email(db, email=email):
            print(f"오류: 이미 존재하는 이메일입니다: {email}")
            return

        db_user = auth_models.User(
            username=username,
            password_hash=get_password_hash(password),
            email=email,
            gender=gender.value,
            first_name=first_name,
            last_name=last_name,
            center_id=center_id,
            roles=[admin_role],
        )
        db.add(db_user)
        await db.commit()
        print(f"관리자 계정이 성공적으로 생성되었습니다: {email} ({username})")


@cli.command()
def main(
    username: str = typer.Option(
        ..., '--username', '-u',
        prompt="관리자 사용자명(DNI)을 입력하세요",
        help="로그인 시 사용할 사용자명입니다."
    ),
    email: str = typer.Option(
        ..., '--email', '-e',
        prompt="관리자 이메일을 입력하세요",
        help="생성할 관리자 계정의 이메일 주소입니다."
    ),
    password: str = typer.Option(
        ..., '--password', '-p',
        prompt="관리자 비밀번호를 입력하세요",
        hide_input=True,
        confirmation_prompt=True,
        help="생성할 관리자 계정의 비밀번호입니다. (최소 6자 이상)"
    ),
    first_name: str = typer.Option("Admin", '--first-name', help="관리자의 이름입니다."),
    last_name: str = typer.Option("User", '--last-name', help="관리자의 성입니다."),
    gender: GenderType = typer.Option(GenderType.MALE, '--gender', help="MALE 또는 FEMALE"),
    center_id: int = typer.Option(1, '--center-id', '-c', help="소속 의료센터 ID 입니다."),
):
    """
    병원 관리 애플리케이션을 위한 새로운 관리자(ADMIN) 계정을 생성합니다.
    """
    if len(password) < 6:
        print("오류: 비밀번호는 최소 6자 이상이어야 합니다.")
        raise typer.Abort()

    print("관리자 계정 생성을 시작합니다...")
    asyncio.run(create_admin_user(
        username=username,
        email=email,
        password=password,
        first_name=first_name,
        last_name=last_name,
        gender=gender,
        center_id=center_id,
    ))


if __name__ == "__main__":
    cli()
