# Confidential payroll session client

from confpay.client.application.coordinator import PayrollSession
from confpay.client.application.signature_manager import SignatureManager
from confpay.client.client import PayrollClient
from confpay.client.domain.entities import FieldName, OperationKind, OperationOutcome
from confpay.common.decorators import single_flight

__all__ = [
    "FieldName",
    "OperationKind",
    "OperationOutcome",
    "PayrollClient",
    "PayrollSession",
    "SignatureManager",
    "single_flight",
]
