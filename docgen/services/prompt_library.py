"""Built-in prompt library.

Each use case carries several named variants; `activePromptId` picks the one
used when a request does not name a prompt. Templates are substituted with
plain string replacement of the `{context}` token, so the JSON braces in the
examples need no escaping.
"""

_CHECKSHEET_EXAMPLE = """[
  {
    "itemName": "Hydraulic Pump Motor",
    "inspectionPoint": "Check motor bearing temperature using infrared thermometer",
    "frequency": "Weekly",
    "expectedStatus": "<= 70 C",
    "notes": "Measure at bearing housing. Above 80 C shut down immediately",
    "source": "pump-manual.pdf",
    "sourcePage": 12
  }
]"""

_CITATION_RULE = (
    "Each excerpt starts with a [Source: <file>, Page <n>] tag. Copy the file name into "
    "\"source\" and the page number into \"sourcePage\" for every item taken from it."
)

_WORK_INSTRUCTIONS_SHAPE = """{
  "title": "Procedure title",
  "overview": "What the procedure achieves",
  "prerequisites": {
    "tools": ["Specific tools with sizes"],
    "materials": ["Parts with part numbers"],
    "safety": ["PPE and safety requirements"]
  },
  "steps": [
    {"stepNumber": 1, "description": "Action", "details": "Technical detail and specs"}
  ],
  "safetyWarnings": ["Critical safety information"],
  "completionChecklist": ["Verification items"]
}"""


def _checksheet(id, name, description, system, focus, tags, active=False):
    return {
        "id": id,
        "useCase": "checksheet",
        "name": name,
        "description": description,
        "system": system + " Return ONLY a valid JSON array.",
        "userTemplate": (
            "Based on the following maintenance manual excerpts:\n\n{context}\n\n"
            f"{focus}\n\n{_CITATION_RULE}\n\n"
            "Frequency must be one of Daily, Weekly, Monthly, Quarterly, Annually.\n\n"
            f"IMPORTANT: Return ONLY a JSON array. Example:\n{_CHECKSHEET_EXAMPLE}"
        ),
        "version": "1.0.0",
        "tags": tags,
        "isActive": active,
    }


def _work_instructions(id, name, description, system, focus, tags, active=False):
    return {
        "id": id,
        "useCase": "workInstructions",
        "name": name,
        "description": description,
        "system": system + " Return ONLY valid JSON.",
        "userTemplate": (
            "Based on the following maintenance manual excerpts:\n\n{context}\n\n"
            f"{focus}\n\n"
            f"Return ONLY a JSON object with this structure:\n{_WORK_INSTRUCTIONS_SHAPE}"
        ),
        "version": "1.0.0",
        "tags": tags,
        "isActive": active,
    }


DEFAULT_LIBRARY = {
    "checksheet": {
        "activePromptId": "detailed-comprehensive",
        "prompts": [
            _checksheet(
                "detailed-comprehensive",
                "Detailed Comprehensive Checksheet",
                "Comprehensive inspection points with detailed notes and acceptance criteria",
                "You are an expert maintenance documentation specialist. Extract ALL inspection "
                "points with maximum detail including acceptance criteria, tolerances, and notes.",
                "Create a comprehensive inspection checksheet with:\n"
                "- Item Name (specific equipment/component)\n"
                "- Inspection Point (detailed description)\n"
                "- Frequency\n"
                "- Expected Status (specific acceptance criteria)\n"
                "- Notes (instructions, tolerances, specifications)",
                ["detailed", "comprehensive", "recommended"],
                active=True,
            ),
            _checksheet(
                "quick-simple",
                "Quick & Simple Checksheet",
                "Simplified checklist for routine daily inspections",
                "You are a maintenance checklist expert. Create simple, easy-to-follow inspection "
                "points for quick checks. Focus on essential items only.",
                "Create a simple inspection checksheet focusing on:\n"
                "- Most critical items only\n"
                "- Pass/fail checks\n"
                "- Daily and weekly frequencies primarily\n"
                "- Brief, clear descriptions",
                ["simple", "quick", "daily"],
            ),
            _checksheet(
                "safety-focused",
                "Safety-Focused Checksheet",
                "Emphasizes safety-critical inspection points",
                "You are a safety compliance expert. Prioritize safety-critical inspection points, "
                "hazard identification, and regulatory compliance items.",
                "Generate a SAFETY-FOCUSED checksheet prioritizing:\n"
                "- Safety-critical components\n"
                "- Hazard prevention checks\n"
                "- Emergency systems\n"
                "- Personal protective equipment",
                ["safety", "critical", "compliance"],
            ),
            _checksheet(
                "preventive-maintenance",
                "Preventive Maintenance Checksheet",
                "Focus on preventive maintenance tasks and schedules",
                "You are a preventive maintenance specialist. Extract scheduled maintenance tasks, "
                "lubrication points, and wear items.",
                "Create a PREVENTIVE MAINTENANCE checksheet with:\n"
                "- Lubrication points and schedules\n"
                "- Filter replacements\n"
                "- Belt/chain tension checks\n"
                "- Wear item inspections",
                ["preventive", "maintenance", "scheduled"],
            ),
        ],
    },
    "workInstructions": {
        "activePromptId": "detailed-expert",
        "prompts": [
            _work_instructions(
                "detailed-expert",
                "Detailed Expert Instructions",
                "Comprehensive step-by-step with technical details",
                "You are a technical documentation expert. Create detailed, professional work "
                "instructions with all necessary technical information.",
                "Create DETAILED WORK INSTRUCTIONS including:\n"
                "- Overview\n"
                "- Complete tool/material lists\n"
                "- Detailed step-by-step procedures\n"
                "- Technical specifications\n"
                "- Quality checkpoints",
                ["detailed", "expert", "comprehensive", "recommended"],
                active=True,
            ),
            _work_instructions(
                "beginner-friendly",
                "Beginner-Friendly Instructions",
                "Simple, easy-to-follow steps for new technicians",
                "You are a training specialist. Write clear, simple instructions suitable for "
                "beginners. Avoid jargon and explain technical terms.",
                "Create BEGINNER-FRIENDLY instructions:\n"
                "- Simple language\n"
                "- Extra safety reminders\n"
                "- Common mistakes to avoid",
                ["beginner", "training", "simple"],
            ),
            _work_instructions(
                "quick-reference",
                "Quick Reference Guide",
                "Condensed procedure for experienced technicians",
                "You are creating a quick reference. Provide concise steps for experienced users.",
                "Create QUICK REFERENCE instructions:\n"
                "- Brief steps\n"
                "- Critical steps only\n"
                "- Key specifications",
                ["quick", "experienced", "concise"],
            ),
            _work_instructions(
                "safety-critical",
                "Safety-Critical Procedure",
                "Emphasizes safety at every step",
                "You are a safety engineer. Emphasize safety procedures, hazards, and protective "
                "measures at every step.",
                "Create SAFETY-CRITICAL instructions:\n"
                "- Safety warning before each step\n"
                "- Lockout/tagout procedures\n"
                "- PPE requirements\n"
                "- Emergency procedures",
                ["safety", "critical", "hazards"],
            ),
        ],
    },
}
