"""
SmartTransit Predictor API 진입점
실행: python run.py
접속: http://localhost:3001/api/health
"""
import logging
import os
import sys
from pathlib import Path

import uvicorn
from dotenv import load_dotenv


def main():
    """메인 실행 함수"""
    print("=" * 60)
    print("SmartTransit Predictor - 서울 지하철 혼잡도 예측")
    print("=" * 60)
    print()

    load_dotenv()

    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "3001"))
    reload = os.getenv("RELOAD", "False").lower() == "true"
    log_level = os.getenv("LOG_LEVEL", "info").lower()

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    url = f"http://{host}:{port}"
    print(f"[*] 서버 주소: {url}")
    print(f"[*] 상태 확인: {url}/api/health")
    print(f"[*] 프로젝트 디렉토리: {Path.cwd()}")
    print(f"[*] 실시간 API 키: {'설정됨' if os.getenv('SEOUL_METRO_API_KEY') else '샘플 키 사용'}")
    print()
    print("서버를 중지하려면 Ctrl+C를 누르세요.")
    print("=" * 60)
    print()

    try:
        uvicorn.run(
            "api.app:app",
            host=host,
            port=port,
            reload=reload,
            reload_dirs=["api", "src"],
            log_level=log_level,
        )
    except KeyboardInterrupt:
        print("\n\n[*] 서버를 종료합니다.")
    except Exception as e:
        print(f"\n[ERROR] 서버 실행 중 오류 발생: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
