"""
Supabase 마이그레이션 확인 스크립트

Supabase Python 클라이언트는 DDL을 직접 실행할 수 없으므로
테이블이 없으면 Dashboard SQL Editor에서 실행할 SQL을 출력한다.
"""
from pathlib import Path
from typing import Optional

from loguru import logger
from supabase import Client

from database.supabase_client import get_supabase_client


MIGRATION_FILE = Path(__file__).parent / "migrations" / "001_membership_fee.sql"


def load_migration_sql() -> str:
    if not MIGRATION_FILE.exists():
        raise FileNotFoundError(f"마이그레이션 파일을 찾을 수 없습니다: {MIGRATION_FILE}")
    return MIGRATION_FILE.read_text(encoding="utf-8")


def run_migration(client: Optional[Client] = None) -> bool:
    """
    회비 정산 테이블 존재 확인

    Returns:
        True면 이미 적용됨, False면 SQL 실행이 필요함
    """
    sql_content = load_migration_sql()
    client = client or get_supabase_client()

    try:
        client.table("payment_records").select("id").limit(1).execute()
        logger.info("✅ payment_records 테이블이 이미 존재합니다")
        return True
    except Exception as e:
        if "does not exist" in str(e) or "relation" in str(e).lower():
            logger.info("payment_records 테이블이 없습니다. 생성이 필요합니다.")
        else:
            logger.warning(f"테이블 확인 중 오류: {e}")

    logger.info("=" * 60)
    logger.info("Supabase Dashboard → SQL Editor에서 아래 SQL을 실행해주세요:")
    logger.info("=" * 60)
    print("\n" + sql_content + "\n")
    return False


if __name__ == "__main__":
    run_migration()
