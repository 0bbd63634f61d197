# tests/__init__.py

"""
FastAPI 애플리케이션의 테스트 스위트 패키지입니다.

이 패키지는 애플리케이션의 모든 구성 요소 (API 엔드포인트, 비즈니스 로직, 데이터베이스 상호작용)에 대한
단위(Unit) 테스트, 통합(Integration) 테스트, 그리고 기능(Functional) 테스트 코드를 포함합니다.

테스트 코드는 `pytest` 프레임워크를 기반으로 작성될 예정이며,
각 비즈니스 도메인에 따라 하위 디렉토리로 구조화됩니다.

주요 하위 디렉토리 (도메인별 테스트):
- `domains/`: 각 비즈니스 도메인(shared, usr, loc, ven, fms, inv, lims, ops)에 대한
              테스트 파일들을 포함하는 디렉토리입니다.
              예: `domains/shared/test_shared_domain.py`
              예: `domains/usr/test_usr_domain.py`
- `conftest.py`: `pytest`의 fixtures (테스트 함수가 공유하는 리소스)를 정의하는 파일입니다.
                 데이터베이스 연결, 테스트 클라이언트, 임시 데이터 등 테스트 환경 설정을
                 중앙 집중화하는 데 사용될 수 있습니다. (테스트 루트에 위치)

이 `__init__.py` 파일은 'tests' 디렉토리를 Python 패키지로 인식하게 하여,
`pytest`와 같은 테스트 러너가 테스트 모듈들을 올바르게 발견하고 실행할 수 있도록 합니다.
대부분의 경우, 이 파일은 비어 있거나 간단한 문서화만 포함합니다.
"""

# Pytest는 __init__.py 파일이 없어도 테스트 파일을 찾을 수 있지만,
# 명시적으로 패키지로 만드는 것은 Python의 표준 패키지 구조를 따르고,
# 복잡한 임포트나 전역적인 픽스처 관리에 용이합니다.

# 패키지 메타데이터 (선택 사항)
__title__ = "WIMS API Tests"
__description__ = "Test suite for WIMS FastAPI application."
__version__ = "0.1.0" # 테스트 스위트의 내부 버전
__all__ = [] # 이 패키지에서 'from tests import *' 시 내보낼 이름 목록.