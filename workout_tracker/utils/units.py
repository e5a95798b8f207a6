from workout_tracker.enums import WeightUnit

LB_TO_KG = 0.453592


def to_kg(weight: float, unit) -> float:
    """Normalize a weight to kilograms. Missing units are taken as kg."""
    if weight is None:
        return 0.0
    if unit is not None and WeightUnit(unit) == WeightUnit.LB:
        return weight * LB_TO_KG
    return float(weight)


def exercise_volume_kg(exercise) -> float:
    """sets x reps x weight in kg; bodyweight rows (weight 0) add nothing."""
    if not exercise.weight:
        return 0.0
    return exercise.sets * exercise.reps * to_kg(exercise.weight, exercise.unit)
