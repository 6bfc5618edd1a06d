"""
Tablas fiscales incluidas con la aplicación.

Valores oficiales por año gravable; se reemplazan con un archivo JSON de la
misma forma mediante FISCAL_TABLES_PATH. Actualizar cada año según la
resolución de la DIAN que fija la UVT.

Referencias:
- UVT 2024: Resolución DIAN 187 de 2023 ($47.065)
- UVT 2025: Resolución DIAN 193 de 2024 ($49.799)
- UVT 2026: Resolución DIAN 238 de 2025 ($52.374)
- Tabla de renta personas naturales: Art. 241 E.T.
- Deducciones y rentas exentas: Art. 336 E.T.
- Tarifas RST: Art. 908 E.T. (numeral 6 revivido por Sentencia C-540/2023)
- Descuentos RST: Art. 912 E.T.
"""

# Art. 241 E.T. - rangos enteros en UVT; el impuesto marginal se liquida
# sobre el exceso del límite inferior de cada rango. Los impuestos base desde
# 8.670 UVT encadenan el exceso exacto del rango anterior (2.296,1; 5.901,1;
# 10.352,2) para que el impuesto no baje al cruzar un límite
ORDINARY_BRACKETS = [
    {"from_uvt": 0, "to_uvt": 1089, "marginal_rate": "0", "base_tax_uvt": "0"},
    {"from_uvt": 1090, "to_uvt": 1699, "marginal_rate": "0.19", "base_tax_uvt": "0"},
    {"from_uvt": 1700, "to_uvt": 4099, "marginal_rate": "0.28", "base_tax_uvt": "116"},
    {"from_uvt": 4100, "to_uvt": 8669, "marginal_rate": "0.33", "base_tax_uvt": "788"},
    {"from_uvt": 8670, "to_uvt": 18969, "marginal_rate": "0.35", "base_tax_uvt": "2296.1"},
    {"from_uvt": 18970, "to_uvt": 30999, "marginal_rate": "0.37", "base_tax_uvt": "5901.1"},
    {"from_uvt": 31000, "to_uvt": None, "marginal_rate": "0.39", "base_tax_uvt": "10352.2"},
]

DEDUCTIONS = {
    # Límite global: 40% del ingreso neto, máximo 1.340 UVT
    "aggregate_rate": "0.40",
    "aggregate_cap_uvt": 1340,
    # Dependientes (Art. 336 num. 3) - adicional al límite
    "dependent_uvt": 72,
    "max_dependents": 4,
    # 1% de compras con factura electrónica (Art. 336 num. 5) - adicional al límite
    "electronic_purchases_rate": "0.01",
    "electronic_purchases_cap_uvt": 240,
    # Medicina prepagada (Art. 387): 16 UVT mensuales
    "prepaid_health_cap_uvt": 192,
    # Intereses de vivienda (Art. 119)
    "mortgage_interest_cap_uvt": 1200,
    # Aportes voluntarios pensión y AFC (Arts. 126-1 y 126-4)
    "voluntary_contributions_cap_uvt": 2500,
    # Renta exenta del 25% (Art. 206 num. 10)
    "exempt_income_rate": "0.25",
    "exempt_income_cap_uvt": 790,
    # Aportes obligatorios a pensión (Art. 55)
    "non_constitutive_cap_uvt": 2500,
}


def _table(rows, rate_field):
    """[(desde, hasta, tarifa), ...] -> filas de rango."""
    return [
        {"from_uvt": desde, "to_uvt": hasta, rate_field: tarifa}
        for desde, hasta, tarifa in rows
    ]


SIMPLE_BRACKETS = {
    "PROFESIONAL_LIBERAL": _table([
        (0, 5999, "0.059"),
        (6000, 11999, "0.073"),
        (12000, 29999, "0.12"),
        (30000, None, "0.145"),
    ], "consolidated_rate"),
    "SERVICIOS_TECNICOS": _table([
        (0, 5999, "0.018"),
        (6000, 14999, "0.032"),
        (15000, 29999, "0.069"),
        (30000, None, "0.098"),
    ], "consolidated_rate"),
    "COMERCIAL": _table([
        (0, 5999, "0.018"),
        (6000, 14999, "0.032"),
        (15000, 29999, "0.069"),
        (30000, None, "0.098"),
    ], "consolidated_rate"),
    "TIENDA_PELUQUERIA": _table([
        (0, 5999, "0.011"),
        (6000, 14999, "0.017"),
        (15000, 29999, "0.039"),
        (30000, None, "0.054"),
    ], "consolidated_rate"),
    "RESTAURANTE": _table([
        (0, 5999, "0.032"),
        (6000, 14999, "0.035"),
        (15000, 29999, "0.052"),
        (30000, None, "0.071"),
    ], "consolidated_rate"),
}

# Parágrafo 4 Art. 908 para profesionales; las demás actividades anticipan
# la mitad de su tarifa consolidada
SIMPLE_ADVANCE_BRACKETS = {
    "PROFESIONAL_LIBERAL": _table([
        (0, 5999, "0.03"),
        (6000, 11999, "0.037"),
        (12000, 29999, "0.06"),
        (30000, None, "0.073"),
    ], "advance_rate"),
    "SERVICIOS_TECNICOS": _table([
        (0, 5999, "0.009"),
        (6000, 14999, "0.016"),
        (15000, 29999, "0.0345"),
        (30000, None, "0.049"),
    ], "advance_rate"),
    "COMERCIAL": _table([
        (0, 5999, "0.009"),
        (6000, 14999, "0.016"),
        (15000, 29999, "0.0345"),
        (30000, None, "0.049"),
    ], "advance_rate"),
    "TIENDA_PELUQUERIA": _table([
        (0, 5999, "0.0055"),
        (6000, 14999, "0.0085"),
        (15000, 29999, "0.0195"),
        (30000, None, "0.027"),
    ], "advance_rate"),
    "RESTAURANTE": _table([
        (0, 5999, "0.016"),
        (6000, 14999, "0.0175"),
        (15000, 29999, "0.026"),
        (30000, None, "0.0355"),
    ], "advance_rate"),
}

WITHHOLDING = {
    # Se asume que ~70% de los ingresos tiene retención
    "withheld_share": "0.70",
    "rates": {
        "PROFESIONAL_LIBERAL": "0.11",  # honorarios
        "SERVICIOS_TECNICOS": "0.06",
        "COMERCIAL": "0.035",
        "TIENDA_PELUQUERIA": "0.015",
        "RESTAURANTE": "0.035",
    },
    "default_rate": "0.04",
}

FILING = {"income_uvt": 1400, "patrimony_uvt": 4500}


def _simple(due_dates):
    return {
        # 100.000 UVT para todas las actividades desde la Sentencia C-540/2023
        "eligibility_threshold_uvt": 100000,
        "activity_thresholds_uvt": {},
        "brackets": SIMPLE_BRACKETS,
        "advance_brackets": SIMPLE_ADVANCE_BRACKETS,
        # Parágrafo 3 Art. 910: sin anticipos por debajo de 3.500 UVT
        "advance_exemption_uvt": 3500,
        "advance_due_dates": due_dates,
        # Tope: 0,5% del ingreso máximo del régimen (100.000 UVT)
        "electronic_payments_discount": {"rate": "0.005", "ceiling_uvt": 500},
        # Tope: 4x1000 sobre el ingreso máximo del régimen (100.000 UVT)
        "gmf_discount": {"rate": "1", "ceiling_uvt": 400},
        "gmf_rate": "0.004",
        "ica_estimated_rate": "0.01",
    }


def _year(uvt, due_dates):
    return {
        "uvt": uvt,
        "ordinary_brackets": ORDINARY_BRACKETS,
        "deductions": DEDUCTIONS,
        "simple": _simple(due_dates),
        "withholding": WITHHOLDING,
        "filing": FILING,
    }


# Fechas límite de anticipos: calendario base (NIT terminado en 0)
FISCAL_TABLES = {
    2024: _year(47065, [
        "2024-03-08", "2024-05-10", "2024-07-12",
        "2024-09-06", "2024-11-08", "2025-01-10",
    ]),
    2025: _year(49799, [
        "2025-03-07", "2025-05-09", "2025-07-11",
        "2025-09-05", "2025-11-07", "2026-01-09",
    ]),
    2026: _year(52374, [
        "2026-03-06", "2026-05-08", "2026-07-10",
        "2026-09-04", "2026-11-06", "2027-01-08",
    ]),
}
