"""
Condition-based disease and medicine lists

Used when the advisory is degraded or names none.
"""
from typing import List, Optional


def default_diseases(
    aqi: Optional[float] = None,
    temperature: Optional[float] = None,
    humidity: Optional[float] = None,
    precipitation: Optional[float] = None,
) -> List[str]:
    diseases: List[str] = []

    if aqi is not None and aqi > 100:
        diseases += ["Asthma Exacerbation", "Chronic Obstructive Pulmonary Disease (COPD)", "Acute Bronchitis"]

    if temperature is not None and temperature > 35:
        diseases += ["Heat Stroke", "Heat Exhaustion", "Dehydration"]
    elif temperature is not None and temperature < 15:
        diseases += ["Hypothermia", "Common Cold", "Influenza", "Pneumonia"]

    if humidity is not None and humidity > 80:
        diseases += ["Fungal Skin Infections", "Dermatophytosis"]

    if precipitation is not None and precipitation > 5:
        diseases += ["Waterborne Diseases", "Vector-borne Diseases"]

    return diseases or ["Upper Respiratory Tract Infection"]


def default_medicines(
    aqi: Optional[float] = None,
    temperature: Optional[float] = None,
    humidity: Optional[float] = None,
) -> List[str]:
    medicines: List[str] = []

    if aqi is not None and aqi > 100:
        medicines += ["Albuterol Sulfate", "Budesonide", "Montelukast Sodium"]

    if temperature is not None and temperature > 35:
        medicines += ["Oral Rehydration Solution (ORS)", "Paracetamol", "IV Fluids"]
    elif temperature is not None and temperature < 15:
        medicines += ["Amoxicillin", "Azithromycin", "Dextromethorphan"]

    if humidity is not None and humidity > 80:
        medicines += ["Clotrimazole", "Miconazole Nitrate"]

    return medicines or ["Paracetamol", "Ibuprofen"]
