from pathlib import Path
import sys
from dataclasses import dataclass
from datetime import date
from typing import Callable

import streamlit as st

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

TODAY = date(2025, 6, 1)


@dataclass
class _SessionDict(dict[str, object]):
    """Lightweight replacement for ``st.session_state`` during tests."""

    def clear(self) -> None:  # type: ignore[override]
        super().clear()


@pytest.fixture(autouse=True)
def _stub_streamlit_session_state(request: pytest.FixtureRequest, monkeypatch: pytest.MonkeyPatch) -> None:
    """Replace Streamlit's runtime-bound session state with a plain dictionary.

    Tests marked ``streamlit_runtime`` keep the real session state so they can
    drive a script through ``AppTest``.
    """

    if request.node.get_closest_marker("streamlit_runtime") is not None:
        yield
        return
    session_state = _SessionDict()
    monkeypatch.setattr(st, "session_state", session_state, raising=False)
    yield


class FakeTimer:
    """Timer double that only fires when the test says so."""

    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if self.started and not self.cancelled:
            self.callback()


class FakeTimerFactory:
    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def live(self) -> list[FakeTimer]:
        return [timer for timer in self.timers if timer.started and not timer.cancelled]

    def fire_all(self) -> None:
        for timer in list(self.live):
            timer.fire()


@pytest.fixture
def fake_timers() -> FakeTimerFactory:
    return FakeTimerFactory()


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def valid_sections() -> dict[int, dict[str, object]]:
    """Answers that pass every section when validated on ``TODAY``."""

    return {
        1: {
            "nome_completo": "Ana Souza",
            "data_nascimento": "15/03/2024",
            "genero": "feminino",
            "numero_sus": "123456789012348",
            "estado_nascimento": "SP",
            "cidade_nascimento": "São Paulo",
            "peso_nascer": "3200",
            "semanas_prematuridade": "37_41",
            "complicacoes_parto": "nao",
        },
        2: {
            "nome_mae": "Maria Souza",
            "parentesco": "mae",
            "data_nascimento_responsavel": "01/01/2000",
            "telefone_contato": "(11) 98765-4321",
            "cep": "01310-100",
            "rua": "Avenida Paulista",
            "numero": "1000",
            "bairro": "Bela Vista",
            "cidade_endereco": "São Paulo",
            "estado_endereco": "SP",
            "nivel_estudo": "medio_completo",
        },
        3: {
            "gravidez_planejada": "sim",
            "acompanhamento_pre_natal": "sim",
            "quantidade_consultas": "8_ou_mais",
            "problemas_gravidez": [],
            "tipo_parto": "cesarea",
            "ajuda_especial_respiracao": "nao",
        },
        4: {
            "idade_traqueostomia": "primeiro_ano",
            "motivos_traqueostomia": ["ventilacao_prolongada"],
            "tipo_traqueostomia": "temporaria",
            "equipamentos_medicos": ["canula_traqueostomia", "aspirador_secrecoes"],
        },
        5: {
            "internacoes_pos_traqueostomia": "1_a_5",
            "acompanhamento_medico": ["pediatra"],
            "dificuldades_atendimento": ["falta_transporte"],
        },
        6: {
            "principal_cuidador": "mae",
            "horas_cuidados_diarios": "mais_3_horas",
            "treinamento_hospital": "sim_com_duvidas",
        },
        7: {
            "beneficio_financeiro": "nao",
            "acesso_materiais": "as_vezes",
        },
        8: {
            "observacoes_adicionais": "Usa cânula 3.5",
        },
    }


@pytest.fixture
def committed_child(valid_sections: dict[int, dict[str, object]]) -> dict[int, dict[str, object]]:
    """Context holding only the committed child section."""

    return {1: dict(valid_sections[1])}
