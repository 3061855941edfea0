from core.domain.models import Element
from core.services.matcher import emparejar_elementos, normalizar_fila


def _almacenado(id: int, fila: str = "1", **kw) -> Element:
    datos = {"diametro": 12, "longitud": 300.0, "barras": 4, "dobles_barra": 0, "peso": 10.65}
    datos.update(kw)
    return Element(id=id, fila=fila, **datos)


def _fresco(fila: str, zelemento: str, **kw) -> Element:
    datos = {"diametro": 12, "longitud": 300.0, "barras": 4, "dobles_barra": 0, "peso": 10.65}
    datos.update(kw)
    return Element(fila=fila, zelemento=zelemento, ferrawin_id=f"{fila}-{zelemento}", **datos)


def test_normalizar_fila() -> None:
    assert normalizar_fila("007") == "7"
    assert normalizar_fila("000") == "0"
    assert normalizar_fila("") == ""
    assert normalizar_fila(None) == ""
    assert normalizar_fila(" 12 ") == "12"


def test_match_exacto() -> None:
    resultado = emparejar_elementos([_almacenado(10)], [_fresco("1", "1")])

    assert [(u.elemento_id, u.ferrawin_id) for u in resultado.updates] == [(10, "1-1")]
    assert resultado.por_nivel["exacto"] == 1
    assert resultado.matched == 1
    assert resultado.no_matched == 0


def test_exacto_tiene_prioridad_sobre_flexible() -> None:
    frescos = [_fresco("1", "1", peso=11.0), _fresco("1", "2")]

    resultado = emparejar_elementos([_almacenado(10)], frescos)

    assert resultado.updates[0].ferrawin_id == "1-2"
    assert resultado.por_nivel["exacto"] == 1


def test_exacto_tiene_prioridad_sobre_posicional_aunque_aparezca_despues() -> None:
    frescos = [_fresco("1", "1", longitud=305.0, barras=8), _fresco("1", "2")]

    resultado = emparejar_elementos([_almacenado(10)], frescos)

    assert resultado.updates[0].ferrawin_id == "1-2"
    assert resultado.por_nivel["exacto"] == 1
    assert resultado.por_nivel["posicional"] == 0


def test_match_flexible_ignora_peso() -> None:
    resultado = emparejar_elementos([_almacenado(10, peso=10.0)], [_fresco("1", "3", peso=10.9, longitud=300.5)])

    assert resultado.updates[0].ferrawin_id == "1-3"
    assert resultado.por_nivel["flexible"] == 1


def test_match_posicional_por_diametro_y_longitud() -> None:
    resultado = emparejar_elementos([_almacenado(10, barras=6)], [_fresco("1", "4", longitud=308.0)])

    assert resultado.updates[0].ferrawin_id == "1-4"
    assert resultado.por_nivel["posicional"] == 1


def test_sin_match_si_cambia_el_diametro() -> None:
    resultado = emparejar_elementos([_almacenado(10)], [_fresco("1", "1", diametro=16)])

    assert resultado.updates == []
    assert resultado.no_matched == 1
    assert resultado.sin_match[0].elemento_id == 10


def test_filas_con_ceros_a_la_izquierda_coinciden() -> None:
    resultado = emparejar_elementos([_almacenado(10, fila="003")], [_fresco("3", "1")])

    assert resultado.updates[0].ferrawin_id == "3-1"


def test_un_candidato_no_se_asigna_dos_veces() -> None:
    almacenados = [_almacenado(10), _almacenado(11)]

    resultado = emparejar_elementos(almacenados, [_fresco("1", "1")])

    assert len(resultado.updates) == 1
    assert resultado.updates[0].elemento_id == 10
    assert resultado.matched == 1
    assert resultado.no_matched == 1


def test_emparejamiento_uno_a_uno_en_orden() -> None:
    almacenados = [_almacenado(10), _almacenado(11), _almacenado(12)]
    frescos = [_fresco("1", "1"), _fresco("1", "2"), _fresco("1", "3")]

    resultado = emparejar_elementos(almacenados, frescos)

    assert [(u.elemento_id, u.ferrawin_id) for u in resultado.updates] == [
        (10, "1-1"),
        (11, "1-2"),
        (12, "1-3"),
    ]
    assert len({u.ferrawin_id for u in resultado.updates}) == 3


def test_id_vigente_reserva_su_candidato() -> None:
    almacenados = [_almacenado(10), _almacenado(11, ferrawin_id="1-2")]

    resultado = emparejar_elementos(almacenados, [_fresco("1", "2")])

    assert resultado.updates == []
    assert resultado.matched == 1
    assert resultado.no_matched == 1
    assert resultado.sin_match[0].elemento_id == 10


def test_fila_ausente_cuenta_todos_sus_elementos() -> None:
    almacenados = [_almacenado(10, fila="9"), _almacenado(11, fila="9"), _almacenado(12)]

    resultado = emparejar_elementos(almacenados, [_fresco("1", "1")])

    assert resultado.no_matched == 2
    assert resultado.matched == 1
    assert resultado.total_almacenados == 3
    assert resultado.total_frescos == 1


def test_entradas_vacias() -> None:
    resultado = emparejar_elementos([], [])

    assert resultado.a_dict() == {
        "updates": [],
        "matched": 0,
        "no_matched": 0,
        "total_almacenados": 0,
        "total_frescos": 0,
    }
