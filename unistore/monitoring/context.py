# unistore/monitoring/context.py
"""
Context helpers using contextvars for request/storage/operation propagation.
"""
import contextvars

request_id_var = contextvars.ContextVar("request_id", default=None)
storage_var = contextvars.ContextVar("storage", default=None)
operation_var = contextvars.ContextVar("operation", default=None)

def set_request_context(request_id=None, storage=None, operation=None):
    if request_id is not None:
        request_id_var.set(request_id)
    if storage is not None:
        storage_var.set(storage)
    if operation is not None:
        operation_var.set(operation)

def get_request_context():
    return {
        "request_id": request_id_var.get(),
        "storage": storage_var.get(),
        "operation": operation_var.get(),
    }
