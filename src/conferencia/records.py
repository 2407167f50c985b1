"""Checklist records queued by the offline client.

Two kinds of record are captured in the field:

* :class:`Nota` — an invoice check for a delivery route, optionally carrying
  itemised damage entries (:class:`Avaria`).
* :class:`Palete` — a pallet check for a delivery route.

Both serialise to the camelCase JSON body the remote API expects, and that
same JSON is what the offline queue persists.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

SEM_BANDEIRA = "sem bandeira"


class Tipologia(str, Enum):
    RESFRIADO = "resfriado"
    CONGELADO = "congelado"
    SECO = "seco"


class SimNao(str, Enum):
    SIM = "sim"
    NAO = "nao"

    @classmethod
    def from_bool(cls, value: bool) -> "SimNao":
        return cls.SIM if value else cls.NAO


class RecordKind(Enum):
    """Record kinds, each with its own storage key and API path."""

    NOTA = ("offline_notas", "/notas")
    PALETE = ("offline_paletes", "/paletes")

    def __init__(self, storage_key: str, path: str) -> None:
        self.storage_key = storage_key
        self.path = path

    def parse(self, data: dict[str, Any]) -> "QueueRecord":
        if self is RecordKind.NOTA:
            return Nota.from_dict(data)
        return Palete.from_dict(data)


# ---------------------------------------------------------------------------
# Nota
# ---------------------------------------------------------------------------


@dataclass
class Avaria:
    """A single damage / discrepancy line attached to a :class:`Nota`."""

    tipoErro: str
    codProduto: str | None = None
    descProduto: str | None = None
    quantidade: str | None = None
    unidadeMedida: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"tipoErro": self.tipoErro}
        for key in ("codProduto", "descProduto", "quantidade", "unidadeMedida"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Avaria":
        quantidade = data.get("quantidade")
        return cls(
            tipoErro=str(data["tipoErro"]),
            codProduto=data.get("codProduto"),
            descProduto=data.get("descProduto"),
            quantidade=None if quantidade is None else str(quantidade),
            unidadeMedida=data.get("unidadeMedida"),
        )


@dataclass
class Nota:
    """Invoice inspection for a route."""

    numeroRota: int
    numeroNota: int
    tipologia: Tipologia
    conferidoPor: str
    avaria: SimNao = SimNao.NAO
    avarias: list[Avaria] = field(default_factory=list)

    kind = RecordKind.NOTA

    def __post_init__(self) -> None:
        self.numeroRota = int(self.numeroRota)
        self.numeroNota = int(self.numeroNota)
        self.tipologia = Tipologia(self.tipologia)
        self.avaria = SimNao(self.avaria)

    def to_dict(self) -> dict[str, Any]:
        return {
            "numeroRota": self.numeroRota,
            "numeroNota": self.numeroNota,
            "tipologia": self.tipologia.value,
            "conferidoPor": self.conferidoPor,
            "avaria": self.avaria.value,
            "avarias": [a.to_dict() for a in self.avarias],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Nota":
        return cls(
            numeroRota=data["numeroRota"],
            numeroNota=data["numeroNota"],
            tipologia=data["tipologia"],
            conferidoPor=data.get("conferidoPor", ""),
            avaria=data.get("avaria", SimNao.NAO),
            avarias=[Avaria.from_dict(a) for a in data.get("avarias") or []],
        )


# ---------------------------------------------------------------------------
# Palete
# ---------------------------------------------------------------------------


@dataclass
class Palete:
    """Pallet inspection for a route.

    A blank pallet number means the pallet carries no flag and is stored as
    ``"sem bandeira"``.
    """

    numeroRota: int
    numeroPallet: str
    tipologia: Tipologia
    remontado: SimNao = SimNao.NAO
    conferido: SimNao = SimNao.NAO

    kind = RecordKind.PALETE

    def __post_init__(self) -> None:
        self.numeroRota = int(self.numeroRota)
        self.numeroPallet = (self.numeroPallet or "").strip() or SEM_BANDEIRA
        self.tipologia = Tipologia(self.tipologia)
        self.remontado = SimNao(self.remontado)
        self.conferido = SimNao(self.conferido)

    def to_dict(self) -> dict[str, Any]:
        return {
            "numeroRota": self.numeroRota,
            "numeroPallet": self.numeroPallet,
            "tipologia": self.tipologia.value,
            "remontado": self.remontado.value,
            "conferido": self.conferido.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Palete":
        return cls(
            numeroRota=data["numeroRota"],
            numeroPallet=data.get("numeroPallet", ""),
            tipologia=data["tipologia"],
            remontado=data.get("remontado", SimNao.NAO),
            conferido=data.get("conferido", SimNao.NAO),
        )


QueueRecord = Union[Nota, Palete]
