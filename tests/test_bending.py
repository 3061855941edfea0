from core.domain.bending import formatear_numero, parsear_secuencia_doblado, redondear
from core.domain.models import Doblez, Longitud, Radio


def test_parsea_tramos_dobleces_y_radios_en_orden() -> None:
    segmentos = parsear_secuencia_doblado("345\t90d\t30\t-45d\t12.0r")

    assert segmentos == [
        Longitud(valor=345),
        Doblez(angulo=90),
        Longitud(valor=30),
        Doblez(angulo=-45),
        Radio(valor=12.0),
    ]


def test_descarta_tokens_invalidos_y_vacios() -> None:
    segmentos = parsear_secuencia_doblado("100\t\tabc\t 90d \t-5r\t1e3")

    assert segmentos == [Longitud(valor=100), Doblez(angulo=90)]


def test_cadena_vacia_o_none() -> None:
    assert parsear_secuencia_doblado("") == []
    assert parsear_secuencia_doblado(None) == []


def test_cero_es_un_tramo_valido() -> None:
    assert parsear_secuencia_doblado("0") == [Longitud(valor=0)]


def test_serializa_con_discriminador() -> None:
    segmento = parsear_secuencia_doblado("90d")[0]

    assert segmento.model_dump() == {"tipo": "doblez", "angulo": 90.0}


def test_formatear_numero() -> None:
    assert formatear_numero(300.0) == "300"
    assert formatear_numero("300.000000") == "300"
    assert formatear_numero(300.5) == "300.5"
    assert formatear_numero(300.456) == "300.46"
    assert formatear_numero(None) == ""
    assert formatear_numero("") == ""


def test_redondeo_half_up() -> None:
    assert redondear(2.5) == 3
    assert redondear(0.125, 2) == 0.13
    assert redondear(-2.5) == -3
