# SPDX-License-Identifier: Apache-2.0

"""
Cross-field validation for school beneficiaries and nutrition programmes.

Field-level ranges live on the request models; the checks here span
several fields and are reported together so a form can show every problem
at once.
"""

import re
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Union

from models.entities import NutritionProgram, SchoolBeneficiary, Sppg
from models.enums import SchoolStatus
from models.requests import CreateProgramRequest, CreateSchoolRequest, SchoolFilters
from domain.common import ValidationResult

PROGRAM_CODE_PATTERN = r"^[A-Z0-9-]+$"

AGE_GROUP_FIELDS = ("students_4_to_6", "students_7_to_12", "students_13_to_15", "students_16_to_18")

SchoolLike = Union[SchoolBeneficiary, CreateSchoolRequest]
ProgramLike = Union[NutritionProgram, CreateProgramRequest]


def validate_school(school: SchoolLike) -> ValidationResult:
    """
    Validate student counts and status fields of a school.

    The four age-group counts must add up to total_students exactly;
    target and active students cannot exceed the total.
    """
    errors = []
    warnings = []

    age_total = sum(getattr(school, name) for name in AGE_GROUP_FIELDS)
    if age_total != school.total_students:
        errors.append(
            f"Jumlah siswa per kelompok umur ({age_total}) harus sama dengan total siswa ({school.total_students})"
        )

    if school.target_students > school.total_students:
        errors.append("Target siswa tidak boleh melebihi total siswa")

    if school.active_students > school.total_students:
        errors.append("Siswa aktif tidak boleh melebihi total siswa")

    if school.school_status == SchoolStatus.SUSPENDED:
        if not school.suspended_at:
            errors.append("Tanggal penangguhan harus diisi untuk sekolah yang ditangguhkan")
        if not school.suspension_reason:
            warnings.append("Alasan penangguhan sebaiknya diisi")

    if school.target_students == 0 and school.total_students > 0:
        warnings.append("Target siswa masih 0")

    return ValidationResult.from_errors(errors, warnings)


def validate_program(program: ProgramLike) -> ValidationResult:
    """Validate the schedule fields of a nutrition programme."""
    errors = []

    if not re.match(PROGRAM_CODE_PATTERN, program.program_code):
        errors.append("Kode program hanya boleh berisi huruf kapital, angka, dan tanda hubung")

    if program.end_date is not None and program.end_date <= program.start_date:
        errors.append("Tanggal selesai harus setelah tanggal mulai")

    days = program.feeding_days
    if not 1 <= len(days) <= 7:
        errors.append("Hari pemberian makan harus 1 sampai 7 hari")
    if any(day < 0 or day > 6 for day in days):
        errors.append("Hari pemberian makan harus bernilai 0 (Minggu) sampai 6 (Sabtu)")
    if len(set(days)) != len(days):
        errors.append("Hari pemberian makan tidak boleh duplikat")

    return ValidationResult.from_errors(errors)


def filter_schools(schools: Iterable[SchoolBeneficiary], filters: SchoolFilters) -> List[SchoolBeneficiary]:
    """Apply list filters; search matches name, code or principal, case-insensitively."""
    term = filters.search.lower() if filters.search else None
    result = []

    for school in schools:
        if filters.program_id and school.program_id != filters.program_id:
            continue
        if school.is_active != filters.is_active:
            continue
        if filters.school_type and school.school_type != filters.school_type:
            continue
        if term:
            haystack = [school.school_name, school.school_code or "", school.principal_name]
            if not any(term in value.lower() for value in haystack):
                continue
        result.append(school)

    return result


def build_school_query(filters: SchoolFilters) -> Dict[str, Any]:
    """MongoDB filter equivalent of filter_schools."""
    query: Dict[str, Any] = {"isActive": filters.is_active}
    if filters.program_id:
        query["programId"] = filters.program_id
    if filters.school_type:
        query["schoolType"] = str(filters.school_type.value)
    if filters.search:
        pattern = {"$regex": re.escape(filters.search), "$options": "i"}
        query["$or"] = [{"schoolName": pattern}, {"schoolCode": pattern}, {"principalName": pattern}]
    return query


def summarize_beneficiaries(schools: Iterable[SchoolBeneficiary]) -> Dict[str, Any]:
    """Student totals overall, per school type and per age group."""
    by_type: Dict[str, Dict[str, int]] = defaultdict(lambda: {"schools": 0, "total_students": 0, "target_students": 0})
    age_groups = {name: 0 for name in AGE_GROUP_FIELDS}
    totals = {"schools": 0, "total_students": 0, "target_students": 0, "active_students": 0}

    for school in schools:
        entry = by_type[str(school.school_type)]
        entry["schools"] += 1
        entry["total_students"] += school.total_students
        entry["target_students"] += school.target_students

        totals["schools"] += 1
        totals["total_students"] += school.total_students
        totals["target_students"] += school.target_students
        totals["active_students"] += school.active_students

        for name in AGE_GROUP_FIELDS:
            age_groups[name] += getattr(school, name)

    return {**totals, "by_school_type": dict(by_type), "by_age_group": age_groups}


def check_beneficiary_quota(sppg: Sppg, current_target: int, additional_target: int) -> ValidationResult:
    """Demo accounts may not plan for more students than their beneficiary cap."""
    if not sppg.is_demo_account or sppg.demo_max_beneficiaries is None:
        return ValidationResult(is_valid=True)

    if current_target + additional_target > sppg.demo_max_beneficiaries:
        return ValidationResult.from_errors([
            f"Akun demo dibatasi {sppg.demo_max_beneficiaries} penerima manfaat "
            f"(saat ini {current_target}, ditambah {additional_target})"
        ])
    return ValidationResult(is_valid=True)
