DEFAULT_PROMPT = (
    "Maintain the exact face, facial structure, and identity of the person in the image. "
    "Change their clothing to white Ihram garments as worn by pilgrims in Mecca performing Hajj. "
    "The background MUST be the Grand Mosque (Masjid al-Haram) specifically showing the Kaaba area in Mecca. "
    "Ensure the lighting is natural, the perspective is realistic, and the overall image looks "
    "respectful and high-quality."
)

RESULT_FILENAME = "hajj-portrait.png"

UPLOAD_HINT = "PNG, JPG or WebP (Max 5MB)"
