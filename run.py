import uvicorn
from qc_api.config import settings

def main():
    try:
        uvicorn.run(
            "qc_api.main:app",
            host=settings.HOST,
            port=settings.PORT,
            reload=settings.DEBUG,
            proxy_headers=True,
        )
    except (KeyboardInterrupt, SystemExit):
        pass

if __name__ == "__main__":
    main()
