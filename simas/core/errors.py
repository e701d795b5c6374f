from dataclasses import dataclass, field
from typing import Any, Optional


class SimasError(Exception):
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidacaoError(SimasError):
    pass


class RegraNegocioError(SimasError):
    pass


class NaoEncontradoError(SimasError):
    status_code = 404


class PermissaoError(SimasError):
    status_code = 403


class ConflitoError(SimasError):
    status_code = 409


class RestauracaoError(SimasError):
    pass


@dataclass
class OperationResult:
    """Resultado explicito das operacoes de execucao e restauracao.

    Os routers convertem este valor no corpo ``{"success": ..., "message": ...}``
    sem depender de excecoes atravessando a fronteira do modulo.
    """

    success: bool
    message: Optional[str] = None
    data: Optional[dict[str, Any]] = field(default=None)
    status_code: int = 200

    @classmethod
    def ok(cls, message: str, data: Optional[dict[str, Any]] = None) -> "OperationResult":
        return cls(success=True, message=message, data=data, status_code=200)

    @classmethod
    def from_error(cls, error: SimasError) -> "OperationResult":
        return cls(success=False, message=error.message, status_code=error.status_code)

    def as_response(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": self.success}
        if self.message is not None:
            body["message"] = self.message
        if self.data is not None:
            body["data"] = self.data
        return body
