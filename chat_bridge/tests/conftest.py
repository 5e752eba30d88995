import os
import tempfile

# 日志模块在导入时创建文件处理器，测试期间写到临时目录
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="chat-bridge-logs-"))
