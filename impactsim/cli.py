# impactsim/cli.py
from impactsim.config import settings
from impactsim.data.normalize import COMPOSITION_DENSITIES, ManualRecord
from impactsim.engine.impact import Location


def get_float(prompt, default=None, min_val=None):
    """
    Safe float input with optional default. Non-interactive (EOF) returns default.
    """
    while True:
        try:
            user = input(prompt)
        except EOFError:
            return float(default) if default is not None else None
        if user.strip() == "" and default is not None:
            return float(default)
        try:
            val = float(user)
            if min_val is not None and val < min_val:
                raise ValueError
            return val
        except (ValueError, TypeError):
            print("❌ Please enter a valid number.")


def get_int(prompt, default=None, min_val=None, max_val=None):
    """
    Safe integer input with limits. Non-interactive (EOF) returns default.
    """
    while True:
        try:
            user = input(prompt)
        except EOFError:
            return int(default) if default is not None else None
        if user.strip() == "" and default is not None:
            return int(default)
        try:
            val = int(user)
            if min_val is not None and val < min_val:
                raise ValueError
            if max_val is not None and val > max_val:
                raise ValueError
            return val
        except (ValueError, TypeError):
            print("❌ Invalid integer input.")


def ask_yes_no(prompt, default=False):
    try:
        answer = input(prompt).strip().lower()
    except EOFError:
        return default
    if answer == "":
        return default
    return answer.startswith("y")


def choose_composition():
    names = list(COMPOSITION_DENSITIES)
    print("\n🪨 Composition")
    for i, name in enumerate(names, start=1):
        print(f"  {i}) {name} ({COMPOSITION_DENSITIES[name]:.0f} kg/m³)")
    default = names.index("stony") + 1
    idx = get_int(f"Select composition [{default}]: ", default=default, min_val=1, max_val=len(names))
    return names[idx - 1]


def create_asteroid():
    print("\n☄️ Asteroid Configuration")
    try:
        name = input("Name [Scenario asteroid]: ").strip()
    except EOFError:
        name = ""
    name = name or "Scenario asteroid"

    diameter = get_float("Diameter (m) [default 100]: ", default=100.0, min_val=1e-3)
    velocity = get_float("Entry velocity (km/s) [default 20]: ", default=20.0, min_val=1e-3)
    composition = choose_composition()
    probability = get_float(
        f"Impact probability [default {settings.DEFAULT_IMPACT_PROBABILITY}]: ",
        default=settings.DEFAULT_IMPACT_PROBABILITY,
        min_val=0.0,
    )

    print(f"✔ {name}: {diameter:.1f} m, {velocity:.1f} km/s, {composition}")
    return ManualRecord(
        name=name,
        diameter=diameter,
        velocity=velocity,
        composition=composition,
        impact_probability=min(probability, 1.0),
    )


def create_location():
    print("\n🏙️ Impact Site")
    density = get_float("Population density (people/km²) [default 1000]: ", default=1000.0, min_val=0.0)
    population = get_float("Total population in region [default 1000000]: ", default=1e6, min_val=0.0)
    gdp = get_float(
        f"GDP per capita (USD) [default {settings.DEFAULT_GDP_PER_CAPITA:.0f}]: ",
        default=settings.DEFAULT_GDP_PER_CAPITA,
        min_val=0.0,
    )
    return Location(population_density=density, total_population=population, gdp_per_capita=gdp, name="CLI site")


def ask_warning_years(default=None):
    default = settings.DEFAULT_WARNING_YEARS if default is None else default
    return get_float(f"\nWarning time before impact (years) [default {default:g}]: ", default=default, min_val=0.01)


def run_cli():
    print("======================================")
    print("   ASTEROID IMPACT SIMULATOR (CLI)    ")
    print("======================================")

    record = create_asteroid()
    location = create_location()
    warning_years = ask_warning_years()

    print("\n✅ CLI input complete.")
    print(f"→ Warning time: {warning_years:g} years")

    return record, location, float(warning_years)
