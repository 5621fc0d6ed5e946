"""
Independent Contractor Agreement DOCX generator

Builds the GEODE chapter contract (sections 1-19 plus Annex 1) with python-docx,
using milestone dates from the contract timeline. The generated file can be
uploaded to the contracts Drive folder and attached to email drafts.
"""

import base64
import io
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Mapping, Optional

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt

from ..config import GEODE_DEFAULT_GRANT
from ..geode.payments import format_currency, split_grant
from ..geode.reference import author_initials, get_state
from ..geode.timeline import ContractTimeline, timeline_for_state
from .file_access import DOCX_MIME

logger = logging.getLogger(__name__)


CHAPTER_SCOPE_DEFAULTS: dict[str, str] = {
    "ch1_101": (
        "The 101 section:\n"
        "This introductory chapter provides a comprehensive overview of geothermal energy fundamentals as they "
        "relate to {state}. It covers the basic science, resource types, and current landscape of geothermal "
        "development in the state."
    ),
    "ch2_subsurface": (
        "Subsurface section:\n"
        "This chapter provides a detailed analysis of {state}'s subsurface geothermal resources, including "
        "geological formations, temperature gradients, and resource characterization. The author should assess "
        "both conventional hydrothermal and enhanced geothermal system (EGS) potential."
    ),
    "ch3_electricity": (
        "Electricity section:\n"
        "This chapter should provide a comprehensive analysis of geothermal electricity potential in {state}, "
        "covering technical feasibility, grid integration, economic competitiveness, and policy considerations.\n\n"
        "Key questions to address:\n"
        "- Resource Assessment: What is the technical potential for geothermal electricity generation in {state}, "
        "including both hydrothermal and enhanced geothermal systems?\n"
        "- Grid Integration: How can geothermal power be integrated into {state}'s existing electricity grid "
        "infrastructure, and what transmission upgrades may be needed?\n"
        "- Economic Analysis: How does geothermal electricity compare economically with other baseload and "
        "renewable energy sources in {state}'s energy market?\n"
        "- Market Structure: What is {state}'s electricity market structure, and how do current policies and "
        "regulations affect geothermal development?\n"
        "- Utility Engagement: What roles can {state}'s utilities and cooperatives play in facilitating geothermal "
        "electricity development?\n"
        "- Policy Recommendations: What policy changes or incentives could accelerate geothermal electricity "
        "deployment in {state}?"
    ),
    "ch4_direct_use": (
        "Direct Use section:\n"
        "This chapter explores the potential for direct-use geothermal applications in {state}, including district "
        "heating, agricultural uses, aquaculture, and industrial process heat. The analysis should cover technical "
        "feasibility, economic viability, and specific opportunities unique to {state}."
    ),
    "ch5_heat_ownership": (
        "Heat Ownership section:\n"
        "This chapter examines the legal framework governing subsurface heat ownership in {state}. It should analyze "
        "existing mineral rights, water rights, and any emerging geothermal-specific legislation, as well as "
        "recommend policy approaches to clarify heat ownership."
    ),
    "ch6_policy": (
        "Policy section:\n"
        "This chapter provides a comprehensive analysis of the policy landscape affecting geothermal development in "
        "{state}. It should cover federal, state, and local policies, regulatory frameworks, permitting processes, "
        "and recommend policy changes to accelerate geothermal deployment."
    ),
    "ch7_stakeholders": (
        "Stakeholders section:\n"
        "This chapter should highlight how private and public interests can align to unlock geothermal as a "
        "long-term economic development tool for {state}. The author should analyze the role of landowners, public "
        "land managers, rural communities, and tribal communities, offering insight into stakeholder priorities and "
        "the types of partnerships that can ensure widespread support and equitable benefit-sharing.\n\n"
        "Key questions to address:\n"
        "- Benefits for Private Landowners: What new income streams can geothermal projects offer to {state}'s "
        "private landowners, and how can landowners be engaged early as partners in geothermal development?\n"
        "- Public Sector Gains and Roles: What potential revenue or economic benefits could {state}'s state and local "
        "governments gain from geothermal energy, and what roles can public agencies play in supporting and "
        "regulating geothermal projects?\n"
        "- Tribal Engagement: How will {state}'s tribal nations be involved in geothermal development, and what steps "
        "can ensure that tribal rights are respected and that tribal communities share in the economic and energy "
        "benefits?\n"
        "- Stakeholder Collaboration: What strategies will promote effective collaboration among all key "
        "stakeholders so that everyone is fairly engaged in {state}'s geothermal projects and shares the benefits "
        "without unfair burdens?\n"
        "- Oil & Gas Industry Engagement: How can {state}'s oil and gas companies and skilled workforce be mobilized "
        "to kickstart geothermal energy projects, and what economic benefits could this bring to the state?"
    ),
    "ch8_environment": (
        "Environment section:\n"
        "This chapter provides a comprehensive environmental assessment of geothermal development in {state}. It "
        "should cover environmental impacts, mitigation strategies, permitting requirements, and the overall "
        "environmental benefits of geothermal compared to other energy sources."
    ),
    "ch9_military": (
        "Military Installations section:\n"
        "This chapter assesses the potential for geothermal energy at military installations in {state}. It should "
        "cover energy security requirements, existing infrastructure, and opportunities for geothermal to support "
        "military base energy resilience goals."
    ),
}


def chapter_scope_text(chapter_type: str, state_name: str) -> str:
    template = CHAPTER_SCOPE_DEFAULTS.get(chapter_type)
    if template:
        return template.format(state=state_name)
    readable = chapter_type.replace("ch", "Chapter ", 1).replace("_", " ", 1)
    return f"This chapter covers {readable} for the {state_name} state geothermal data report."


def contract_filename(state_abbrev: str, chapter_name: str, contractor_name: str) -> str:
    """InnerSpace_Agreement_{ABBR}_{Chapter_Label}_{Initials}.docx"""
    chapter_slug = "_".join(chapter_name.split())
    return f"InnerSpace_Agreement_{state_abbrev}_{chapter_slug}_{author_initials(contractor_name)}.docx"


@dataclass
class ContractFields:
    contractor_name: str
    contractor_email: str
    state_name: str
    chapter_name: str
    chapter_type: str
    chapter_num: str
    timeline: ContractTimeline
    chapter_scope_text: Optional[str] = None
    payment_amount: Decimal = Decimal(GEODE_DEFAULT_GRANT)


@dataclass
class GeneratedContract:
    content: bytes
    filename: str
    base64: str
    mime_type: str
    timeline: ContractTimeline
    drive_file_id: Optional[str] = None
    drive_web_view_link: Optional[str] = None


# Numbered clauses 3-18; 1, 2 and 19 carry contract-specific values
STANDARD_CLAUSES = [
    (
        "3. TERM/TERMINATION. ",
        "This Agreement may be terminated by either party (i) upon thirty (30) days' written notice to the other "
        "party, or (ii) upon ten (10) days written notice to the other party, if the other party materially breaches "
        "this Agreement, unless the breach is cured within the notice period. A regular, ongoing relationship of "
        "indefinite term is not contemplated. Upon termination and as otherwise requested by the Recipient, the "
        "Contractor will promptly return to the Recipient all items and copies containing or embodying Confidential "
        "Information (as defined herein), and all Work Product (as defined herein), except that the Contractor may "
        "keep its personal copies of its compensation records and this Agreement. The following provisions shall "
        "survive termination or expiration of this Agreement: 3, 4, 5, and 9 through 18.",
    ),
    (
        "4. RELATIONSHIP OF PARTIES. ",
        "It is understood by the parties that the Contractor is an independent contractor with respect to the "
        "Recipient, and not an employee of the Recipient. The Recipient will not provide fringe benefits, including "
        "health insurance benefits, paid vacation, or any other employee benefit, for the benefit of the Contractor. "
        "It is contemplated that the relationship between the Contractor and the Recipient shall be a non-exclusive "
        "one. The Contractor also performs services for other organizations and/or individuals.",
    ),
    (
        "5. OWNERSHIP OF WORK PRODUCT. ",
        "The Recipient will have full and exclusive ownership of any and all work product created by the Contractor "
        'or provided to the Recipient under this Agreement (collectively, "Work Product"). All Work Product is work '
        "made for hire to the extent allowed by law. In addition, if any Work Product does not qualify as a work made "
        "for hire, the Contractor (a) hereby assigns and agrees to assign to the Recipient all rights, title, and "
        "interest in the Work Product; (b) grants to the Recipient an irrevocable, exclusive, royalty-free, and "
        "perpetual license to any rights in the Work Product that cannot be assigned to the Recipient; and (c) waives "
        "enforcement of any rights (including, without limitation, artist's rights or moral rights) in the Work "
        "Product that cannot be assigned or licensed to the Recipient.",
    ),
    (
        "6. RECIPIENT'S CONTROL. ",
        "Except in extraordinary circumstances and when necessary, the Contractor shall perform the Services without "
        "direct supervision by the Recipient.",
    ),
    (
        "7. PROFESSIONAL CAPACITY. ",
        "The Contractor is a professional who uses his or her own professional and business methods to perform "
        "services. The Contractor has not and will not receive training from the Recipient regarding how to perform "
        "the Services.",
    ),
    (
        "8. NO LOCATION ON PREMISES. ",
        "The Contractor has no desk or other equipment either located at or furnished by the Recipient. Except to the "
        "extent that the Contractor works in a territory as defined by the Recipient, his or her services are not "
        "integrated into the mainstream of the Recipient's business.",
    ),
    (
        "9. REPRESENTATIONS AND WARRANTIES. ",
        "The Contractor represents, warrants and covenants that: (i) the Services will be performed in a "
        "professional and workmanlike manner and that none of such Services or any part of this Agreement is or will "
        "be inconsistent with any obligation the Contractor may have to others; (ii) all work under this Agreement "
        "shall be the Contractor's original work and none of the Services or Work Product or any use or exploitation "
        "thereof hereunder will infringe, misappropriate or violate any intellectual property or other right of any "
        "person or entity (including, without limitation, the Contractor); (iii) the Contractor has the full right to "
        "provide the Recipient with the assignments and rights provided for herein (and has written enforceable "
        "agreements with all persons necessary to give it the rights to do the foregoing and otherwise fully perform "
        "this Agreement); (iv) the Work Product shall be in accordance with the relevant specifications and the "
        "Recipient's written instructions, and any deviation from the specifications and the Recipient's written "
        "instructions shall be promptly corrected by Consultant, at its own cost; (v) the Contractor shall comply "
        "with all applicable laws and Recipient safety rules in the course of performing the Services; and (v) if "
        "the Contractor's work requires a license, the Contractor has obtained that license and the license is in "
        "full force and effect.",
    ),
    (
        "10. EXPENSES PAID BY RECIPIENT. ",
        "The Contractor's business and travel expenses, when incurred at the request of the Recipient are to be paid "
        "by the Recipient.",
    ),
    (
        "11. CONFIDENTIALITY. ",
        'The Contractor may have had access to proprietary, private and/or otherwise confidential information '
        '("Confidential Information") of the Recipient. The Contractor agrees to hold all Confidential Information '
        "in strict confidence and not to disclose any Confidential Information to any third party without the prior "
        "written consent of the Recipient. Upon termination of this Agreement, the Contractor shall return all "
        "Confidential Information and copies thereof to the Recipient.",
    ),
    (
        "12. INDEMNIFICATION. ",
        "The Contractor shall indemnify and hold harmless the Recipient from any and all claims, damages, losses, "
        "costs, and expenses (including reasonable attorneys' fees) arising from the Contractor's breach of this "
        "Agreement or the Contractor's negligent or willful acts or omissions.",
    ),
    (
        "13. LIMITATION OF LIABILITY. ",
        "In no event shall either party be liable to the other for any incidental, consequential, indirect, or "
        "special damages of any kind.",
    ),
    (
        "14. DISPUTE RESOLUTION. ",
        "Any disputes arising out of this Agreement shall first be submitted to mediation. If mediation is "
        "unsuccessful, the dispute shall be submitted to binding arbitration in accordance with the rules of the "
        "American Arbitration Association.",
    ),
    (
        "15. ENTIRE AGREEMENT. ",
        "This Agreement represents the entire agreement between the parties and supersedes all prior negotiations, "
        "representations, or agreements, whether written or oral.",
    ),
    (
        "16. GOVERNING LAW. ",
        "This Agreement shall be governed by the laws of the Commonwealth of Massachusetts.",
    ),
    (
        "17. SEVERABILITY. ",
        "If any provision of this Agreement is held to be invalid or unenforceable, the remaining provisions shall "
        "remain in full force and effect.",
    ),
    (
        "18. AMENDMENT. ",
        "This Agreement may only be amended in writing signed by both parties.",
    ),
]


class ContractDocxGenerator:
    """Render one Independent Contractor Agreement"""

    def __init__(self, fields: ContractFields):
        self.fields = fields
        self.dates = fields.timeline.as_display()
        self.doc = Document()

        style = self.doc.styles["Normal"]
        style.font.name = "Calibri"
        style.font.size = Pt(11)

    def generate(self) -> bytes:
        f = self.fields
        logger.info(f"📄 Generating contract for {f.contractor_name} ({f.state_name}, {f.chapter_name})")

        self._title("INDEPENDENT CONTRACTOR AGREEMENT")
        self._para(
            f'This Independent Contractor Agreement (this "Agreement") is made effective as of '
            f'{self.dates["effectiveDate"]}, by and between Project InnerSpace, Inc. (the "Recipient"), of 68 '
            f"Harrison Ave, Ste 605 PMB 9959., Boston, Massachusetts 02111-1929, and {f.contractor_name} (the "
            '"Contractor"). In this Agreement, the party who is contracting to receive the services shall be referred '
            'to as "Recipient", and the party who will be providing the services shall be referred to as "Contractor."'
        )
        self._services()
        self._payment()

        for heading, text in STANDARD_CLAUSES:
            self._clause(heading, text)

        self._signatories()
        self.doc.add_page_break()
        self._annex()

        buffer = io.BytesIO()
        self.doc.save(buffer)
        content = buffer.getvalue()
        buffer.close()

        logger.info(f"✅ Generated contract DOCX ({len(content)} bytes)")
        return content

    def _title(self, text: str):
        p = self.doc.add_paragraph()
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER
        run = p.add_run(text)
        run.bold = True
        run.font.size = Pt(14)

    def _para(self, text: str):
        return self.doc.add_paragraph(text)

    def _label(self, text: str):
        self.doc.add_paragraph().add_run(text).bold = True

    def _clause(self, heading: str, text: str):
        p = self.doc.add_paragraph()
        p.add_run(heading).bold = True
        p.add_run(text)

    def _services(self):
        d = self.dates
        self._clause(
            "1. DESCRIPTION OF SERVICES. ",
            "Beginning on the effective date of this Agreement and concluding upon the completion of the Services "
            "outlined under DELIVERABLES and as described in Annex 1 attached hereto and incorporated herein by "
            'reference, the Contractor shall deliver the services (collectively, the "Services") specified. The scope, '
            "duration, principal responsibilities, deliverables, and timeline for the Services are as detailed in "
            "Annex 1.",
        )
        self._label("DELIVERABLES:")
        self._para(
            "The Contractor will provide three deliverables over the course of the Project, which are due on or "
            "before the date indicated in the Timeline below."
        )
        self._para('First draft of the answers to the Report Chapter "Expert" Questions.')
        self._para("Review of ghostwritten draft chapter.")
        self._para("Approval of the final version of the chapter, revised and refined based on feedback.")

        self._label("TIMELINE:")
        self._para(
            "Please note all milestone and timeline deadlines and dates contained in this timeline may be adjusted "
            "and are subject to the mutual agreement and execution of the Recipient and Contractor."
        )
        self._para(f'Research and answering of "expert" questions: {d["expertQDate"]}')
        self._para(f'Ghostwriter draft to Contractor: {d["firstDraftDate"]}')
        self._para(f'Contractor review and edits returned to ghostwriter: {d["reviewReturnDate"]}')
        self._para(f'Grammar, copy edits, & design proof to Contractor: {d["grammarProofDate"]}')
        self._para(
            f'Contractor publication approval of grammar, copy edits, & design proof: {d["finalApprovalDate"]}'
        )

    def _payment(self):
        total = Decimal(str(self.fields.payment_amount))
        first, second, final = split_grant(total)

        self._clause(
            "2. PAYMENT FOR SERVICES. ",
            f"The Recipient will pay compensation to the Contractor for the Services in the amount of "
            f"{format_currency(total)}. Invoices will be sent as detailed in Schedule A.",
        )
        self._para(
            "The funds will be paid to the Contractor in the following manner, in accordance with the Deliverables "
            "and Timeline:"
        )
        self._para(f"Total Grant: {format_currency(total)}")
        self._para(f"Initial payment (37.5%): {format_currency(first)} - upon contract signing")
        self._para(
            f"Second Payment (37.5%): {format_currency(second)} - upon completion of contractor review of Project "
            "InnerSpace first draft."
        )
        self._para(
            f"Final payment (25%): {format_currency(final)} - to be paid within 30 days of Project InnerSpace "
            "receiving the Contractor's final publication approval."
        )
        self._para(
            "No other fees and/or expenses will be paid to the Contractor unless such fees and/or expenses have been "
            "approved in advance by the appropriate executive on behalf of the Recipient in writing. The Contractor "
            "shall be solely responsible for any and all taxes, Social Security contributions or payments, disability "
            "insurance, unemployment taxes, and other payroll-type taxes applicable to such compensation."
        )

    def _signatories(self):
        name = self.fields.contractor_name
        self._clause(
            "19. SIGNATORIES. ",
            "This Agreement shall be signed by Dani Merino-Garcia, VP Research, on behalf of Project InnerSpace, "
            f"and by {name}, on behalf of the Contractor.",
        )
        self._para("This Agreement is effective as of the date first above written.")
        self._para("")
        self._para("Daniel Merino-Garcia.\t\t\t\t\t\t\t\tDate")
        self._para("Project InnerSpace")
        self._para("")
        self._para(f"{name}\t\t\t\t\t\t\tDate")
        self._para(self.fields.contractor_email)

    def _annex(self):
        f = self.fields
        d = self.dates
        self._title("ANNEX 1")
        self._para(
            "This Annex 1 attachment supplements the Grant Agreement executed by and between Project InnerSpace, "
            f'Inc. and Contractor on {d["effectiveDate"]} (the "Agreement"). Unless otherwise stated in this Annex, all '
            "terms of the Agreement shall apply to this Annex in full force and effect. Unless otherwise defined herein, "
            "all capitalized terms used in this Annex shall have the meaning ascribed to them in the Agreement. "
            "Notwithstanding anything to the contrary in the Agreement, any inconsistency between the Terms and "
            "Conditions and this Annex will be resolved in favor of this Annex."
        )

        self._label("Project Name")
        self._para(f"The Future of Geothermal Energy in {f.state_name} Report: {f.chapter_name}")
        self._clause("Project Start Date: ", d["effectiveDate"])
        self._clause("Project End Date: ", f'Publication approval or {d["finalApprovalDate"]}, whichever is earlier')

        self._label("Milestones")
        self._para(f'[M1] {d["expertQDate"]}: Written answers of chapter "expert" questions')
        self._para(f'[M2] {d["firstDraftDate"]}: Contractor Review of InnerSpace\'s First Internal Draft')
        self._para(f'[M3] {d["reviewReturnDate"]}: Delivery of contractor review and edits')
        self._para(f'[M4] {d["finalApprovalDate"]}: Approval of publication-ready report')
        self._para(
            "Interim meetings will be held throughout the project to ensure it remains on track. The frequency will "
            "be agreed upon by the Contractor and a Project InnerSpace assigned point of contact. Project InnerSpace "
            "may include peer reviewers from the broader geothermal community throughout the course of the "
            "collaboration."
        )

        self._label("Commitments/Outreach")
        self._para(
            "Project InnerSpace intends to disseminate the Project's results in various formats to reach the "
            "scientific, policy, and general audiences. Project InnerSpace requires the Contractor to be willing to "
            "present and/or engage in various actions over the course of 6 months after publication."
        )
        self._para("Potential engagements include, but are not limited to:")
        self._para("Discussion of Project results with policymakers.").style = "List Bullet"
        self._para(
            "Comment on subsequent peer review requests involving other Project InnerSpace-funded projects covering "
            "similar topics."
        ).style = "List Bullet"

        self._label("Project Scope")
        scope = f.chapter_scope_text or chapter_scope_text(f.chapter_type, f.state_name)
        for line in scope.split("\n"):
            if line.strip():
                self._para(line.strip())


def render_contract(fields: ContractFields) -> bytes:
    return ContractDocxGenerator(fields).generate()


async def generate_and_upload_contract(
    contractor_name: str,
    contractor_email: str,
    state: str,
    chapter_type: str,
    chapter_name: str,
    chapter_num: str,
    drive=None,
    chapter_scope_text: Optional[str] = None,
    payment_amount: Optional[Decimal] = None,
    signing_date: Optional[date] = None,
    deadlines: Optional[Mapping[str, date]] = None,
) -> Optional[GeneratedContract]:
    """
    Timeline -> DOCX -> base64 -> Drive upload. A failed upload still returns the
    contract so it can be attached to the email draft. None for an unknown state
    """
    state_info = get_state(state)
    if not state_info:
        logger.error(f"❌ Unknown state for contract: {state}")
        return None

    timeline = timeline_for_state(state, signing_date, deadlines)
    logger.info(
        f"📝 Generating contract for {contractor_name}: {state_info.label} / {chapter_name}, "
        f"{timeline.timeline_type} timeline, {timeline.buffer_days} days buffer before DOE deadline"
    )

    fields = ContractFields(
        contractor_name=contractor_name,
        contractor_email=contractor_email,
        state_name=state_info.label,
        chapter_name=chapter_name,
        chapter_type=chapter_type,
        chapter_num=chapter_num,
        timeline=timeline,
        chapter_scope_text=chapter_scope_text,
        payment_amount=payment_amount or Decimal(GEODE_DEFAULT_GRANT),
    )
    content = render_contract(fields)
    filename = contract_filename(state_info.abbreviation, chapter_name, contractor_name)

    contract = GeneratedContract(
        content=content,
        filename=filename,
        base64=base64.b64encode(content).decode(),
        mime_type=DOCX_MIME,
        timeline=timeline,
    )

    if drive is not None:
        uploaded = await drive.upload_file(content, filename, DOCX_MIME)
        if uploaded:
            contract.drive_file_id = uploaded["fileId"]
            contract.drive_web_view_link = uploaded["webViewLink"]
            logger.info(f"✅ Contract uploaded to Drive: {uploaded['webViewLink']}")
        else:
            logger.warning("⚠️ Drive upload failed, contract will still be attached to email")

    return contract
