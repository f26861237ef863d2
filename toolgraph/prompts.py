"""
Prompts
=======
System directives and canned human messages for both workflows.

The crop directive describes the workflow step by step; the approver rubric is
deliberately independent of it so the evaluation does not just echo the
cropper's own reasoning back.
"""

ARITHMETIC_SYSTEM_PROMPT = (
    "You are a helpful assistant tasked with performing arithmetic on a set of inputs."
)

CROP_SYSTEM_PROMPT = (
    "You are a helpful assistant that can analyze images and crop them based on user requests. "
    "Follow this workflow:\n"
    "1. Analyze the original image to understand its content and dimensions\n"
    "2. Determine the appropriate crop area (x, y, width, height) based on the user's requirements\n"
    "3. Use the crop_image tool to perform the crop - you only need to provide the crop_area coordinates"
)

REJECTION_AMENDMENT = (
    "\n\nIMPORTANT: Previous crop attempt was rejected with this feedback:\n"
    '"{feedback}"\n'
    "Please adjust your crop parameters accordingly."
)

APPROVAL_PROMPT = """You are an image crop quality validator. Your job is to compare the original image with the cropped result and determine if the crop is appropriate and high quality.

Evaluate the crop based on:
- Is the subject/main content properly framed and not cut off?
- Does the crop maintain good composition?
- Is the aspect ratio reasonable and intentional?
- Are important elements preserved in the crop?

If approved is true, provide a brief confirmation in feedback.
If approved is false, provide specific feedback about what's wrong (e.g., "The product is partially cut off on the right side" or "The crop removes important context from the top of the image")."""

NO_CROP_FEEDBACK = "No cropped image was produced"

REJECTION_FEEDBACK = (
    "The crop was rejected. Feedback: {feedback}\n\n"
    "Please try again with adjusted crop parameters."
)


def with_rejection_feedback(base: str, feedback: str | None) -> str:
    """Append the previous rejection reason to a directive, if there is one."""
    if not feedback:
        return base
    return base + REJECTION_AMENDMENT.format(feedback=feedback)
