import logging
import json
import traceback
from typing import Optional
from pathlib import Path
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from datetime import datetime

class JSONFormatter(logging.Formatter):
    """JSON格式的日志格式化器"""

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        super().__init__()

    def format(self, record) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno
        }

        # 添加异常信息
        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "stacktrace": traceback.format_exception(*record.exc_info)
            }

        # 添加额外字段
        if hasattr(record, "request_id"):
            log_data["request_id"] = record.request_id
        if hasattr(record, "path"):
            log_data["path"] = record.path

        # 添加自定义字段
        log_data.update(self.kwargs)

        return json.dumps(log_data, default=str)

class LoggerManager:
    """日志管理器"""

    def __init__(self,
                 name: str,
                 log_dir: Optional[str] = None,
                 level: str = "INFO",
                 max_size: int = 10*1024*1024,  # 10MB
                 backup_count: int = 10,
                 format_json: bool = True):
        self.name = name
        self.log_dir = Path(log_dir) if log_dir else None
        self.level = getattr(logging, level.upper())
        self.max_size = max_size
        self.backup_count = backup_count
        self.format_json = format_json

        # 初始化日志器
        self.logger = self._setup_logger()

    def _setup_logger(self) -> logging.Logger:
        """设置日志器"""
        logger = logging.getLogger(self.name)
        logger.setLevel(self.level)

        # 重复创建时不叠加处理器
        if getattr(logger, "_flawless_configured", False):
            return logger

        # 设置格式化器
        if self.format_json:
            formatter = JSONFormatter()
        else:
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )

        # 添加控制台处理器
        console_handler = logging.StreamHandler()
        console_handler.setLevel(self.level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        # 指定目录时才写文件
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)

            file_handler = RotatingFileHandler(
                self.log_dir / f"{self.name}.log",
                maxBytes=self.max_size,
                backupCount=self.backup_count
            )
            file_handler.setLevel(self.level)
            file_handler.setFormatter(formatter)

            # 添加错误日志处理器
            error_handler = TimedRotatingFileHandler(
                self.log_dir / f"{self.name}_error.log",
                when="midnight",
                interval=1,
                backupCount=30
            )
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(formatter)

            logger.addHandler(file_handler)
            logger.addHandler(error_handler)

        logger._flawless_configured = True
        return logger

    def get_logger(self) -> logging.Logger:
        """获取日志器"""
        return self.logger
