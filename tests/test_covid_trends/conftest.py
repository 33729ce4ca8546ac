"""
Pytest configuration and fixtures for COVID trends tests
"""

import pandas as pd
import pytest

JHU_IDENTITY = "UID,iso2,iso3,code3,FIPS,Admin2,Province_State,Country_Region,Lat,Long_,Combined_Key"
VACCINE_HEADER = (
    "Date,UID,Province_State,Country_Region,Doses_admin,People_at_least_one_dose,"
    "People_fully_vaccinated,Total_additional_doses,Stage_One_Doses"
)


def wide_csv(entities, dates, with_population=False) -> bytes:
    """
    Build JHU-style wide CSV bytes

    entities: list of (uid, county, state, values) or (uid, county, state, population, values)
    """
    header = JHU_IDENTITY + (",Population" if with_population else "") + "," + ",".join(dates)
    lines = [header]
    for entity in entities:
        if with_population:
            uid, county, state, population, values = entity
        else:
            uid, county, state, values = entity
        fields = [str(uid), "US", "USA", "840", str(uid % 100000), county, state, "US",
                  "32.5", "-86.6", f'"{county}, {state}, US"']
        if with_population:
            fields.append(str(population))
        fields.extend(str(v) for v in values)
        lines.append(",".join(fields))
    return ("\n".join(lines) + "\n").encode("utf-8")


def vaccine_csv(rows) -> bytes:
    """rows: list of (date, uid, state, doses, one_dose, fully, additional)"""
    lines = [VACCINE_HEADER]
    for date, uid, state, doses, one_dose, fully, additional in rows:
        lines.append(f"{date},{uid},{state},US,{doses},{one_dose},{fully},{additional},0")
    return ("\n".join(lines) + "\n").encode("utf-8")


SCENARIO_DATES = ["1/22/20", "1/23/20", "1/24/20"]


@pytest.fixture
def confirmed_bytes():
    """Region A: cases 10,20,30. Region B: cases 100,150,300."""
    return wide_csv(
        [
            (84000001, "Alpha", "StateA", [10, 20, 30]),
            (84000002, "Beta", "StateB", [100, 150, 300]),
        ],
        SCENARIO_DATES,
    )


@pytest.fixture
def deaths_bytes():
    """Region A: deaths 1,2,3, population 1000. Region B: deaths 5,10,30, population 2000."""
    return wide_csv(
        [
            (84000001, "Alpha", "StateA", 1000, [1, 2, 3]),
            (84000002, "Beta", "StateB", 2000, [5, 10, 30]),
        ],
        SCENARIO_DATES,
        with_population=True,
    )


@pytest.fixture
def vaccine_bytes():
    return vaccine_csv([
        ("2021-01-01", 84000001, "StateA", 100, 80, 50, 0),
        ("2021-02-01", 84000001, "StateA", 500, 400, 300, 10),
        ("2021-01-01", 84000002, "StateB", 600, 500, 200, 5),
    ])


@pytest.fixture
def region_days_scenario():
    """Region-day counts for the two-region scenario"""
    dates = pd.to_datetime(["2020-01-22", "2020-01-23", "2020-01-24"])
    return pd.DataFrame({
        "region": ["StateA"] * 3 + ["StateB"] * 3,
        "country": ["US"] * 6,
        "date": list(dates) * 2,
        "cases": [10.0, 20.0, 30.0, 100.0, 150.0, 300.0],
        "deaths": [1.0, 2.0, 3.0, 5.0, 10.0, 30.0],
        "population": [1000.0] * 3 + [2000.0] * 3,
    })


@pytest.fixture
def make_wide_csv():
    return wide_csv


@pytest.fixture
def make_vaccine_csv():
    return vaccine_csv
