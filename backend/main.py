import uvicorn
import os

from orderhub.core.config import settings

if __name__ == "__main__":
    # 开发环境启用自动重载：ORDERHUB_RELOAD=1
    is_dev = os.getenv("ORDERHUB_RELOAD", "0") == "1"

    uvicorn.run(
        "orderhub.main:app",
        host="127.0.0.1",  # 只监听本地
        port=8000,
        reload=is_dev,
        log_level=settings.LOG_LEVEL.lower()
    )
