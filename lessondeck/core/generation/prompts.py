from langchain_core.prompts import PromptTemplate

# --- Generate Slide ---
SLIDE_SYSTEM = (
    "You are an educational slide designer for children. "
    "Create ONE slide as a complete, self-contained HTML document. "
    "Use inline <style> only: no external CSS, fonts, images or JavaScript. "
    "Language, vocabulary and visual density must suit the target age group. No Markdown."
)
SLIDE_PROMPT = PromptTemplate.from_template(
    f"{SLIDE_SYSTEM}\n"
    "Lesson context: topic='{topic}', age group='{age}', lesson title='{lesson_title}'.\n"
    "This is slide {slide_number} of {total_slides}.\n\n"
    "Slide title: {title}\n\n"
    "Slide content ({source}):\n{content}\n\n"
    "Guidelines:\n"
    "- Return a short slide title and the full HTML (<!DOCTYPE html> ... </html>).\n"
    "- Fit a 4:3 viewport (1600x1200) without scrolling.\n"
    "- Set an explicit page background colour.\n"
    "- Large readable text, bright friendly colours, simple shapes built with CSS.\n"
    "- Keep any animation short; the slide must look complete when static.\n"
)

SOURCE_LABELS = {
    "plan-driven": "excerpt from the lesson plan",
    "description-driven": "slide description",
}
