"""操作边界的异常转换：业务异常透传，连接异常与后端异常转为统一提示"""

import logging

from fastapi import HTTPException
from sqlalchemy.exc import InterfaceError, OperationalError

logger = logging.getLogger(__name__)

CONNECTION_ERROR = (
    "Unable to connect to the server. "
    "Please check your internet connection and try again."
)

TRANSPORT_ERRORS = (OperationalError, InterfaceError)


def operation_failed(exc: Exception, message: str) -> HTTPException:
    """把未预期的异常转为用户可见的错误，原始信息只写日志"""
    if isinstance(exc, TRANSPORT_ERRORS):
        logger.error(f"{message}（数据库连接失败）: {exc}")
        return HTTPException(status_code=503, detail=CONNECTION_ERROR)

    logger.error(f"{message}: {exc}", exc_info=True)
    return HTTPException(status_code=500, detail=message)
