"""
gymhub/features/workout_plans/generator.py

30-day workout and nutrition plan generation.

The plan type follows from BMI; recommendations and a 7-day split (repeated
for four weeks) follow from the plan type. The plan is rendered to an A4 PDF
with reportlab and returned as bytes for mailing.
"""

import copy
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from io import BytesIO
from typing import List, Optional, Tuple, Union

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas


BMI_UNDERWEIGHT = 18.5
BMI_OVERWEIGHT = 25.0
PLAN_WEEKS = 4

Number = Union[int, float, Decimal]


class PlanType(str, Enum):
    WEIGHT_GAIN = "WEIGHT_GAIN"
    WEIGHT_LOSS = "WEIGHT_LOSS"
    RECOMPOSITION = "RECOMPOSITION"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ", 1)


@dataclass(frozen=True)
class WorkoutDay:
    day: int
    focus: str
    details: List[str]


@dataclass
class GeneratedPlan:
    plan_type: PlanType
    bmi: Optional[float]
    recommendations: List[str]
    workouts_by_day: List[WorkoutDay]
    pdf: bytes = field(repr=False, default=b"")


_WEEKLY_SPLIT = [
    ("Upper Body Strength", ["Bench Press 4x6–8", "Row 4x6–8", "OHP 3x8–10", "Lat Pulldown 3x10–12", "Core 10 min"]),
    ("Lower Body Strength", ["Squat 4x6–8", "RDL 4x6–8", "Leg Press 3x10–12", "Calf Raise 3x12–15", "Core 10 min"]),
    ("Cardio / Conditioning", ["Incline Walk 25–35 min or Intervals 15–20 min", "Mobility 10 min"]),
    ("Push Hypertrophy", ["Incline DB Press 4x8–12", "Cable Fly 3x12–15", "Lateral Raise 4x12–15", "Triceps Pressdown 3x10–12"]),
    ("Pull Hypertrophy", ["Pull-ups/Assisted 4x6–10", "Chest Supported Row 4x8–12", "Rear Delt Fly 3x12–15", "Biceps Curl 3x10–12"]),
    ("Legs Hypertrophy", ["Front Squat/Leg Press 4x8–12", "Romanian Deadlift 3x8–12", "Lunges 3x10–12/leg", "Ham Curl 3x10–12"]),
    ("Rest / Active Recovery", ["Light walk 20–30 min", "Mobility/Stretching 15–20 min"]),
]

_CARDIO_DAY = 2
_CARDIO_BY_TYPE = {
    PlanType.WEIGHT_LOSS: "Cardio 30–45 min (moderate) or Intervals 20–25 min",
    PlanType.WEIGHT_GAIN: "Optional light cardio 15–20 min; focus on recovery",
}

_RECOMMENDATIONS = {
    PlanType.WEIGHT_GAIN: [
        "Calorie surplus: +300 to +500 kcal/day",
        "Protein: 1.6–2.2 g/kg bodyweight",
        "Carbs: 4–6 g/kg; Fats: 0.8–1.0 g/kg",
        "Progressive overload on compound lifts",
        "7–8 hours sleep, hydration 3L/day",
    ],
    PlanType.WEIGHT_LOSS: [
        "Calorie deficit: -300 to -500 kcal/day",
        "Protein: 1.8–2.4 g/kg bodyweight to preserve muscle",
        "Daily steps: 8k–10k",
        "Mix of strength (3x/week) + cardio (2–3x/week)",
        "Prioritize whole foods and fiber",
    ],
    PlanType.RECOMPOSITION: [
        "Slight surplus/deficit based on weekly progress",
        "Protein: ~2.0 g/kg bodyweight",
        "Strength training 3–4x/week + 1–2 cardio sessions",
        "Track measurements weekly; adjust calories by 150–200 kcal",
    ],
}


def decide_plan_type(height_cm: Optional[Number], weight_kg: Optional[Number]) -> Tuple[PlanType, Optional[float]]:
    """Classify by BMI. Missing or non-positive measurements give RECOMPOSITION with no BMI."""
    if not height_cm or not weight_kg or height_cm <= 0 or weight_kg <= 0:
        return PlanType.RECOMPOSITION, None
    height_m = float(height_cm) / 100
    bmi = float(weight_kg) / (height_m * height_m)
    if bmi < BMI_UNDERWEIGHT:
        return PlanType.WEIGHT_GAIN, bmi
    if bmi >= BMI_OVERWEIGHT:
        return PlanType.WEIGHT_LOSS, bmi
    return PlanType.RECOMPOSITION, bmi


def recommendations_for(plan_type: PlanType) -> List[str]:
    return list(_RECOMMENDATIONS[plan_type])


def workout_schedule(plan_type: PlanType, weeks: int = PLAN_WEEKS) -> List[WorkoutDay]:
    split = copy.deepcopy(_WEEKLY_SPLIT)
    if plan_type in _CARDIO_BY_TYPE:
        split[_CARDIO_DAY][1][0] = _CARDIO_BY_TYPE[plan_type]

    days = []
    for week in range(weeks):
        for index, (focus, details) in enumerate(split):
            days.append(WorkoutDay(day=week * 7 + index + 1, focus=focus, details=list(details)))
    return days


class _PdfWriter:
    """Top-down text cursor over a reportlab canvas with automatic page breaks."""

    def __init__(self, pdf: canvas.Canvas):
        self.pdf = pdf
        self.width, self.height = A4
        self.left = 20 * mm
        self.bottom = 20 * mm
        self.y = self.height - 25 * mm

    def line(self, text: str, font: str = "Helvetica", size: int = 11, gap: float = 5.5 * mm) -> None:
        if self.y < self.bottom:
            self.pdf.showPage()
            self.y = self.height - 25 * mm
        self.pdf.setFont(font, size)
        self.pdf.drawString(self.left, self.y, text)
        self.y -= gap

    def centered(self, text: str, font: str, size: int) -> None:
        self.pdf.setFont(font, size)
        self.pdf.drawCentredString(self.width / 2, self.y, text)
        self.y -= 10 * mm

    def space(self, amount: float = 4 * mm) -> None:
        self.y -= amount


def render_plan_pdf(
    name: str,
    email: str,
    plan_type: PlanType,
    bmi: Optional[float],
    recommendations: List[str],
    days: List[WorkoutDay],
    height_cm: Optional[Number] = None,
    weight_kg: Optional[Number] = None,
) -> bytes:
    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    pdf.setTitle("30-Day Workout & Nutrition Plan")
    out = _PdfWriter(pdf)

    out.centered("30-Day Workout & Nutrition Plan", "Helvetica-Bold", 20)
    out.line(f"For: {name} ({email})", size=12)
    if height_cm and weight_kg:
        out.line(f"Height: {height_cm} cm, Weight: {float(weight_kg):.1f} kg", size=12)
        if bmi:
            out.line(f"BMI: {bmi:.1f}", size=12)
    out.line(f"Plan Type: {plan_type.label}", size=12)
    out.space()

    out.line("General Recommendations", font="Helvetica-Bold", size=15, gap=7 * mm)
    for item in recommendations:
        out.line(f"• {item}")
    out.space()

    out.line("30-Day Schedule", font="Helvetica-Bold", size=15, gap=7 * mm)
    for day in days:
        out.line(f"Day {day.day}: {day.focus}", font="Helvetica-Bold")
        for detail in day.details:
            out.line(f"- {detail}")
        out.space(2 * mm)

    pdf.save()
    return buffer.getvalue()


def generate_plan(
    name: str, email: str, height_cm: Optional[Number] = None, weight_kg: Optional[Number] = None
) -> GeneratedPlan:
    plan_type, bmi = decide_plan_type(height_cm, weight_kg)
    recommendations = recommendations_for(plan_type)
    days = workout_schedule(plan_type)
    pdf = render_plan_pdf(name, email, plan_type, bmi, recommendations, days, height_cm, weight_kg)
    return GeneratedPlan(plan_type=plan_type, bmi=bmi, recommendations=recommendations, workouts_by_day=days, pdf=pdf)
