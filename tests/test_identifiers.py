import pytest

from tailwatch.services.identifiers import to_iata_ident, to_icao_ident


@pytest.mark.parametrize('typed, expected', [
    ('6E412', 'IGO412'),
    ('6e412', 'IGO412'),
    ('AA 839', 'AAL839'),
    ('ba-117', 'BAW117'),
    (' UAL567 ', 'UAL567'),
    ('ZZ123', 'ZZ123'),
    ('N12345', 'N12345'),
])
def test_to_icao_ident(typed, expected) -> None:
    assert to_icao_ident(typed) == expected


def test_to_iata_ident() -> None:
    assert to_iata_ident('AAL839') == 'AA839'
    assert to_iata_ident('igo412') == '6E412'
    assert to_iata_ident('XYZ1') == 'XYZ1'
    assert to_iata_ident('AB') == 'AB'
