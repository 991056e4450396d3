class WeightConverter:
    """Utility for converting between kg and lbs."""

    LB_TO_KG = 0.453592
    KG_TO_LB = 1 / LB_TO_KG
    UNITS = ("kg", "lbs")

    @staticmethod
    def kg_to_lb(kg: float) -> float:
        return round(kg * WeightConverter.KG_TO_LB, 2)

    @staticmethod
    def lb_to_kg(lb: float) -> float:
        return round(lb * WeightConverter.LB_TO_KG, 2)

    @staticmethod
    def to_kg(value: float, unit: str) -> float:
        """Return ``value`` in kilograms without rounding."""
        if unit == "lbs":
            return value * WeightConverter.LB_TO_KG
        if unit == "kg":
            return value
        raise ValueError(f"unknown weight unit: {unit}")

    @staticmethod
    def convert(value: float, from_unit: str, to_unit: str) -> float:
        """Convert ``value`` between units without rounding."""
        if from_unit == to_unit:
            return value
        kg = WeightConverter.to_kg(value, from_unit)
        if to_unit == "kg":
            return kg
        if to_unit == "lbs":
            return kg / WeightConverter.LB_TO_KG
        raise ValueError(f"unknown weight unit: {to_unit}")
