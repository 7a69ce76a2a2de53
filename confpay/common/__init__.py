# Common utilities
from confpay.common.crypto import CryptoUtils as CryptoUtils
from confpay.common.logging_utils import setup_logger as setup_logger
from confpay.common.mixins import Configurable as Configurable

__all__ = ["Configurable", "CryptoUtils", "setup_logger"]
