"""
회비 정산 설정
"""
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Literal
from dotenv import load_dotenv

load_dotenv()


class SupabaseConfig(BaseSettings):
    """Supabase 설정"""

    supabase_url: str = Field(default="", description="Supabase Project URL")
    supabase_key: str = Field(default="", description="Supabase service key")

    class Config:
        env_prefix = ""
        case_sensitive = False


class ReconciliationConfig(BaseSettings):
    """입금 내역 정산 설정"""

    # 회원 매칭
    min_partial_match_length: int = Field(default=2, ge=1, description="부분 일치에 사용할 최소 이름 길이")
    couple_name_separators: str = Field(default="·ㆍ•・&,/+", description="부부 공동 입금자명 구분자")

    # 업로드 제한
    max_upload_rows: int = Field(default=2000, ge=1, description="업로드 1건당 최대 입금 내역 수")

    # 저장소
    backend: Literal["supabase", "memory"] = Field(default="supabase", description="저장소 종류")

    # 로깅
    log_level: str = Field(default="INFO", description="콘솔 로그 레벨")
    log_dir: str = Field(default="logs", description="로그 파일 디렉토리")

    class Config:
        env_prefix = "MEMBERSHIP_FEE_"
        case_sensitive = False


# 전역 설정 인스턴스
supabase_config = SupabaseConfig()
reconciliation_config = ReconciliationConfig()
