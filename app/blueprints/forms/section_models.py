from sqlalchemy.orm import declared_attr
from sqlalchemy.types import String, TypeDecorator

from app import db
from app.utils.utils import utcnow


class YesNo(TypeDecorator):
    """
    Nominal survey answer stored as 'Y', 'N' or NULL (unanswered)
    """

    impl = String(1)
    cache_ok = True


class SectionResponseMixin:
    """
    Columns shared by every per-visit section table.
    At most one row exists per (visit, section) through the unique visit_uid.
    """

    response_uid = db.Column(db.Integer(), primary_key=True, autoincrement=True)

    @declared_attr
    def visit_uid(cls):
        return db.Column(
            db.Integer(),
            db.ForeignKey("supervision_visits.visit_uid", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        )

    created_at = db.Column(db.DateTime(), nullable=False, default=utcnow)
    updated_at = db.Column(
        db.DateTime(), nullable=False, default=utcnow, onupdate=utcnow
    )

    def __init__(self, visit_uid, **fields):
        self.visit_uid = visit_uid
        for name, value in fields.items():
            setattr(self, name, value)


class AdminManagementResponse(SectionResponseMixin, db.Model):
    """
    Section A: health facility operation and management committee
    """

    __tablename__ = "visit_admin_management_responses"

    # A1: Health Facility Operation and Management Committee
    a1_response = db.Column(YesNo())
    a1_comment = db.Column(db.Text())
    a1_respondents_comment = db.Column(db.Text())

    # A2: Committee discusses NCD service provisions
    a2_response = db.Column(YesNo())
    a2_comment = db.Column(db.Text())
    a2_respondents_comment = db.Column(db.Text())

    # A3: Health facility discusses NCD quarterly
    a3_response = db.Column(YesNo())
    a3_comment = db.Column(db.Text())
    a3_respondents_comment = db.Column(db.Text())

    actions_agreed = db.Column(db.Text())


class LogisticsResponse(SectionResponseMixin, db.Model):
    """
    Section B1-B5: NCD medicine availability and supplies
    """

    __tablename__ = "visit_logistics_responses"

    # B1: Essential NCD medicines available
    b1_response = db.Column(YesNo())
    b1_comment = db.Column(db.Text())
    b1_respondents_comment = db.Column(db.Text())
    b1_validation_note = db.Column(db.Text())

    # Antihypertensives
    amlodipine_5_10mg = db.Column(YesNo())
    amlodipine_5_10mg_quantity = db.Column(db.Integer())
    amlodipine_5_10mg_units = db.Column(db.String(50))
    enalapril_2_5_10mg = db.Column(YesNo())
    enalapril_2_5_10mg_quantity = db.Column(db.Integer())
    enalapril_2_5_10mg_units = db.Column(db.String(50))
    losartan_25_50mg = db.Column(YesNo())
    losartan_25_50mg_quantity = db.Column(db.Integer())
    losartan_25_50mg_units = db.Column(db.String(50))
    hydrochlorothiazide_12_5_25mg = db.Column(YesNo())
    hydrochlorothiazide_12_5_25mg_quantity = db.Column(db.Integer())
    hydrochlorothiazide_12_5_25mg_units = db.Column(db.String(50))
    chlorthalidone_6_25_12_5mg = db.Column(YesNo())
    chlorthalidone_6_25_12_5mg_quantity = db.Column(db.Integer())
    chlorthalidone_6_25_12_5mg_units = db.Column(db.String(50))
    other_antihypertensives = db.Column(YesNo())
    other_antihypertensives_quantity = db.Column(db.Integer())
    other_antihypertensives_units = db.Column(db.String(50))
    other_antihypertensives_specify = db.Column(db.Text())

    # Statins
    atorvastatin_5mg = db.Column(YesNo())
    atorvastatin_5mg_quantity = db.Column(db.Integer())
    atorvastatin_5mg_units = db.Column(db.String(50))
    atorvastatin_10mg = db.Column(YesNo())
    atorvastatin_10mg_quantity = db.Column(db.Integer())
    atorvastatin_10mg_units = db.Column(db.String(50))
    atorvastatin_20mg = db.Column(YesNo())
    atorvastatin_20mg_quantity = db.Column(db.Integer())
    atorvastatin_20mg_units = db.Column(db.String(50))
    other_statins = db.Column(YesNo())
    other_statins_quantity = db.Column(db.Integer())
    other_statins_units = db.Column(db.String(50))
    other_statins_specify = db.Column(db.Text())

    # Diabetes medication
    metformin_500mg = db.Column(YesNo())
    metformin_500mg_quantity = db.Column(db.Integer())
    metformin_500mg_units = db.Column(db.String(50))
    metformin_1000mg = db.Column(YesNo())
    metformin_1000mg_quantity = db.Column(db.Integer())
    metformin_1000mg_units = db.Column(db.String(50))
    glimepiride_1_2mg = db.Column(YesNo())
    glimepiride_1_2mg_quantity = db.Column(db.Integer())
    glimepiride_1_2mg_units = db.Column(db.String(50))
    gliclazide_40_80mg = db.Column(YesNo())
    gliclazide_40_80mg_quantity = db.Column(db.Integer())
    gliclazide_40_80mg_units = db.Column(db.String(50))
    glipizide_2_5_5mg = db.Column(YesNo())
    glipizide_2_5_5mg_quantity = db.Column(db.Integer())
    glipizide_2_5_5mg_units = db.Column(db.String(50))
    sitagliptin_50mg = db.Column(YesNo())
    sitagliptin_50mg_quantity = db.Column(db.Integer())
    sitagliptin_50mg_units = db.Column(db.String(50))
    pioglitazone_5mg = db.Column(YesNo())
    pioglitazone_5mg_quantity = db.Column(db.Integer())
    pioglitazone_5mg_units = db.Column(db.String(50))
    empagliflozin_10mg = db.Column(YesNo())
    empagliflozin_10mg_quantity = db.Column(db.Integer())
    empagliflozin_10mg_units = db.Column(db.String(50))
    insulin_soluble_inj = db.Column(YesNo())
    insulin_soluble_inj_quantity = db.Column(db.Integer())
    insulin_soluble_inj_units = db.Column(db.String(50))
    insulin_nph_inj = db.Column(YesNo())
    insulin_nph_inj_quantity = db.Column(db.Integer())
    insulin_nph_inj_units = db.Column(db.String(50))
    other_hypoglycemic_agents = db.Column(YesNo())
    other_hypoglycemic_agents_quantity = db.Column(db.Integer())
    other_hypoglycemic_agents_units = db.Column(db.String(50))
    other_hypoglycemic_agents_specify = db.Column(db.Text())
    dextrose_25_solution = db.Column(YesNo())
    dextrose_25_solution_quantity = db.Column(db.Integer())
    dextrose_25_solution_units = db.Column(db.String(50))

    # Cardiovascular medication
    aspirin_75mg = db.Column(YesNo())
    aspirin_75mg_quantity = db.Column(db.Integer())
    aspirin_75mg_units = db.Column(db.String(50))
    clopidogrel_75mg = db.Column(YesNo())
    clopidogrel_75mg_quantity = db.Column(db.Integer())
    clopidogrel_75mg_units = db.Column(db.String(50))
    metoprolol_succinate_12_5_25_50mg = db.Column(YesNo())
    metoprolol_succinate_12_5_25_50mg_quantity = db.Column(db.Integer())
    metoprolol_succinate_12_5_25_50mg_units = db.Column(db.String(50))
    isosorbide_dinitrate_5mg = db.Column(YesNo())
    isosorbide_dinitrate_5mg_quantity = db.Column(db.Integer())
    isosorbide_dinitrate_5mg_units = db.Column(db.String(50))
    other_drugs = db.Column(YesNo())
    other_drugs_quantity = db.Column(db.Integer())
    other_drugs_units = db.Column(db.String(50))
    other_drugs_specify = db.Column(db.Text())

    # Antibiotics
    amoxicillin_clavulanic_potassium_625mg = db.Column(YesNo())
    amoxicillin_clavulanic_potassium_625mg_quantity = db.Column(db.Integer())
    amoxicillin_clavulanic_potassium_625mg_units = db.Column(db.String(50))
    azithromycin_500mg = db.Column(YesNo())
    azithromycin_500mg_quantity = db.Column(db.Integer())
    azithromycin_500mg_units = db.Column(db.String(50))
    other_antibiotics = db.Column(YesNo())
    other_antibiotics_quantity = db.Column(db.Integer())
    other_antibiotics_units = db.Column(db.String(50))
    other_antibiotics_specify = db.Column(db.Text())

    # Respiratory medication
    salbutamol_dpi = db.Column(YesNo())
    salbutamol_dpi_quantity = db.Column(db.Integer())
    salbutamol_dpi_units = db.Column(db.String(50))
    salbutamol = db.Column(YesNo())
    salbutamol_quantity = db.Column(db.Integer())
    salbutamol_units = db.Column(db.String(50))
    ipratropium = db.Column(YesNo())
    ipratropium_quantity = db.Column(db.Integer())
    ipratropium_units = db.Column(db.String(50))
    tiotropium_bromide = db.Column(YesNo())
    tiotropium_bromide_quantity = db.Column(db.Integer())
    tiotropium_bromide_units = db.Column(db.String(50))
    formoterol = db.Column(YesNo())
    formoterol_quantity = db.Column(db.Integer())
    formoterol_units = db.Column(db.String(50))
    other_bronchodilators = db.Column(YesNo())
    other_bronchodilators_quantity = db.Column(db.Integer())
    other_bronchodilators_units = db.Column(db.String(50))
    other_bronchodilators_specify = db.Column(db.Text())

    # Steroids
    prednisolone_5_10_20mg = db.Column(YesNo())
    prednisolone_5_10_20mg_quantity = db.Column(db.Integer())
    prednisolone_5_10_20mg_units = db.Column(db.String(50))
    other_steroids_oral = db.Column(YesNo())
    other_steroids_oral_quantity = db.Column(db.Integer())
    other_steroids_oral_units = db.Column(db.String(50))
    other_steroids_oral_specify = db.Column(db.Text())

    # B2: Blood glucometer functioning
    b2_response = db.Column(YesNo())
    b2_comment = db.Column(db.Text())
    b2_respondents_comment = db.Column(db.Text())
    b2_validation_note = db.Column(db.Text())
    b2_random_records_checked = db.Column(db.Boolean())
    b2_explanation_if_not_in_use = db.Column(db.Text())

    # B3: Urine protein strips used
    b3_response = db.Column(YesNo())
    b3_comment = db.Column(db.Text())
    b3_respondents_comment = db.Column(db.Text())
    b3_validation_note = db.Column(db.Text())
    b3_expiry_date_verified = db.Column(db.Boolean())
    b3_storage_conditions_verified = db.Column(db.Boolean())

    # B4: Urine ketone strips used
    b4_response = db.Column(YesNo())
    b4_comment = db.Column(db.Text())
    b4_respondents_comment = db.Column(db.Text())
    b4_validation_note = db.Column(db.Text())
    b4_expiry_date_verified = db.Column(db.Boolean())
    b4_storage_conditions_verified = db.Column(db.Boolean())

    # B5: Essential equipment available and functional
    b5_response = db.Column(YesNo())
    b5_comment = db.Column(db.Text())
    b5_respondents_comment = db.Column(db.Text())
    b5_validation_note = db.Column(db.Text())

    expiry_dates_checked = db.Column(db.Boolean())
    storage_conditions_verified = db.Column(db.Boolean())
    antihypertensive_comments = db.Column(db.Text())
    statin_comments = db.Column(db.Text())
    diabetes_medication_comments = db.Column(db.Text())
    cardiovascular_medication_comments = db.Column(db.Text())
    respiratory_medication_comments = db.Column(db.Text())
    actions_agreed = db.Column(db.Text())


class EquipmentResponse(SectionResponseMixin, db.Model):
    """
    Equipment availability with quantities
    """

    __tablename__ = "visit_equipment_responses"

    sphygmomanometer = db.Column(YesNo())
    sphygmomanometer_quantity = db.Column(db.Integer())
    sphygmomanometer_units = db.Column(db.String(50))
    weighing_scale = db.Column(YesNo())
    weighing_scale_quantity = db.Column(db.Integer())
    weighing_scale_units = db.Column(db.String(50))
    measuring_tape = db.Column(YesNo())
    measuring_tape_quantity = db.Column(db.Integer())
    measuring_tape_units = db.Column(db.String(50))
    peak_expiratory_flow_meter = db.Column(YesNo())
    peak_expiratory_flow_meter_quantity = db.Column(db.Integer())
    peak_expiratory_flow_meter_units = db.Column(db.String(50))
    oxygen = db.Column(YesNo())
    oxygen_quantity = db.Column(db.Integer())
    oxygen_units = db.Column(db.String(50))
    oxygen_mask = db.Column(YesNo())
    oxygen_mask_quantity = db.Column(db.Integer())
    oxygen_mask_units = db.Column(db.String(50))
    nebulizer = db.Column(YesNo())
    nebulizer_quantity = db.Column(db.Integer())
    nebulizer_units = db.Column(db.String(50))
    pulse_oximetry = db.Column(YesNo())
    pulse_oximetry_quantity = db.Column(db.Integer())
    pulse_oximetry_units = db.Column(db.String(50))
    glucometer = db.Column(YesNo())
    glucometer_quantity = db.Column(db.Integer())
    glucometer_units = db.Column(db.String(50))
    glucometer_strips = db.Column(YesNo())
    glucometer_strips_quantity = db.Column(db.Integer())
    glucometer_strips_units = db.Column(db.String(50))
    lancets = db.Column(YesNo())
    lancets_quantity = db.Column(db.Integer())
    lancets_units = db.Column(db.String(50))
    urine_dipstick = db.Column(YesNo())
    urine_dipstick_quantity = db.Column(db.Integer())
    urine_dipstick_units = db.Column(db.String(50))
    ecg = db.Column(YesNo())
    ecg_quantity = db.Column(db.Integer())
    ecg_units = db.Column(db.String(50))
    other_equipment = db.Column(YesNo())
    other_equipment_quantity = db.Column(db.Integer())
    other_equipment_units = db.Column(db.String(50))
    other_equipment_specify = db.Column(db.Text())

    stethoscope = db.Column(YesNo())
    stethoscope_quantity = db.Column(db.Integer())
    thermometer = db.Column(YesNo())
    thermometer_quantity = db.Column(db.Integer())
    examination_table = db.Column(YesNo())
    examination_table_quantity = db.Column(db.Integer())
    privacy_screen = db.Column(YesNo())
    privacy_screen_quantity = db.Column(db.Integer())

    actions_agreed = db.Column(db.Text())


class MhdcManagementResponse(SectionResponseMixin, db.Model):
    """
    Section B6-B10: MHDC NCD management materials and WHO-ISH risk charts
    """

    __tablename__ = "visit_mhdc_management_responses"

    # B6: MHDC NCD management leaflets available
    b6_response = db.Column(YesNo())
    b6_comment = db.Column(db.Text())
    b6_respondents_comment = db.Column(db.Text())
    b6_healthcare_workers_refer_easily = db.Column(db.Boolean())
    b6_kept_in_opd_use = db.Column(db.Boolean())

    # B7: NCD awareness and patient education materials available
    b7_response = db.Column(YesNo())
    b7_comment = db.Column(db.Text())
    b7_respondents_comment = db.Column(db.Text())
    b7_available_at_health_center = db.Column(db.Boolean())

    # B8: NCD register availability and proper filling
    b8_response = db.Column(YesNo())
    b8_comment = db.Column(db.Text())
    b8_respondents_comment = db.Column(db.Text())
    b8_available_and_filled_properly = db.Column(db.Boolean())

    # B9: WHO-ISH CVD Risk Prediction Chart available
    b9_response = db.Column(YesNo())
    b9_comment = db.Column(db.Text())
    b9_respondents_comment = db.Column(db.Text())
    b9_available_for_patient_care = db.Column(db.Boolean())
    b9_chart_version = db.Column(db.String(50))
    b9_chart_condition = db.Column(db.String(100))

    # B10: WHO-ISH CVD Risk Chart in use
    b10_response = db.Column(YesNo())
    b10_comment = db.Column(db.Text())
    b10_respondents_comment = db.Column(db.Text())
    b10_in_use_for_patient_care = db.Column(db.Boolean())
    b10_staff_trained_on_chart = db.Column(db.Boolean())
    b10_charts_completed_during_visit = db.Column(db.Integer())
    b10_risk_stratification_accurate = db.Column(db.Boolean())

    actions_agreed = db.Column(db.Text())


class ServiceStandardsResponse(SectionResponseMixin, db.Model):
    """
    Section C2-C7: NCD service standards
    """

    __tablename__ = "visit_service_standards_responses"

    # C2: NCD services provided as per PEN protocol
    c2_main_response = db.Column(YesNo())
    c2_main_comment = db.Column(db.Text())
    c2_respondents_comment = db.Column(db.Text())

    c2_blood_pressure = db.Column(YesNo())
    c2_blood_pressure_comment = db.Column(db.Text())
    c2_blood_pressure_equipment_calibrated = db.Column(db.Boolean())
    c2_blood_pressure_protocol_followed = db.Column(db.Boolean())
    c2_blood_sugar = db.Column(YesNo())
    c2_blood_sugar_comment = db.Column(db.Text())
    c2_blood_sugar_strips_available = db.Column(db.Boolean())
    c2_blood_sugar_quality_control = db.Column(db.Boolean())
    c2_bmi_measurement = db.Column(YesNo())
    c2_bmi_measurement_comment = db.Column(db.Text())
    c2_bmi_calculation_accurate = db.Column(db.Boolean())
    c2_waist_circumference = db.Column(YesNo())
    c2_waist_circumference_comment = db.Column(db.Text())
    c2_waist_measurement_technique_correct = db.Column(db.Boolean())
    c2_cvd_risk_estimation = db.Column(YesNo())
    c2_cvd_risk_estimation_comment = db.Column(db.Text())
    c2_cvd_chart_available_and_used = db.Column(db.Boolean())
    c2_urine_protein_measurement = db.Column(YesNo())
    c2_urine_protein_measurement_comment = db.Column(db.Text())
    c2_urine_protein_strips_not_expired = db.Column(db.Boolean())
    c2_peak_expiratory_flow_rate = db.Column(YesNo())
    c2_peak_expiratory_flow_rate_comment = db.Column(db.Text())
    c2_peak_flow_meter_calibrated = db.Column(db.Boolean())
    c2_egfr_calculation = db.Column(YesNo())
    c2_egfr_calculation_comment = db.Column(db.Text())
    c2_egfr_formula_used_correctly = db.Column(db.Boolean())
    c2_brief_intervention = db.Column(YesNo())
    c2_brief_intervention_comment = db.Column(db.Text())
    c2_foot_examination = db.Column(YesNo())
    c2_foot_examination_comment = db.Column(db.Text())
    c2_oral_examination = db.Column(YesNo())
    c2_oral_examination_comment = db.Column(db.Text())
    c2_eye_examination = db.Column(YesNo())
    c2_eye_examination_comment = db.Column(db.Text())
    c2_health_education = db.Column(YesNo())
    c2_health_education_comment = db.Column(db.Text())

    # C3: Examination room confidentiality
    c3_response = db.Column(YesNo())
    c3_comment = db.Column(db.Text())
    c3_respondents_comment = db.Column(db.Text())

    # C4: Home-bound NCD services
    c4_response = db.Column(YesNo())
    c4_comment = db.Column(db.Text())
    c4_respondents_comment = db.Column(db.Text())

    # C5: Community-based NCD care
    c5_response = db.Column(YesNo())
    c5_comment = db.Column(db.Text())
    c5_respondents_comment = db.Column(db.Text())

    # C6: School-based NCD prevention program
    c6_response = db.Column(YesNo())
    c6_comment = db.Column(db.Text())
    c6_respondents_comment = db.Column(db.Text())

    # C7: Patient tracking mechanism
    c7_response = db.Column(YesNo())
    c7_comment = db.Column(db.Text())
    c7_respondents_comment = db.Column(db.Text())

    actions_agreed = db.Column(db.Text())


class HealthInformationResponse(SectionResponseMixin, db.Model):
    """
    Section D1-D5: NCD health information and reporting
    """

    __tablename__ = "visit_health_information_responses"

    # D1: NCD OPD register regularly updated
    d1_response = db.Column(YesNo())
    d1_comment = db.Column(db.Text())
    d1_respondents_comment = db.Column(db.Text())

    # D2: NCD dashboard displayed with updated information
    d2_response = db.Column(YesNo())
    d2_comment = db.Column(db.Text())
    d2_respondents_comment = db.Column(db.Text())

    # D3: Monthly Reporting Form sent to concerned authority
    d3_response = db.Column(YesNo())
    d3_comment = db.Column(db.Text())
    d3_respondents_comment = db.Column(db.Text())

    # D4: Number of people seeking NCD services
    d4_response = db.Column(YesNo())
    d4_comment = db.Column(db.Text())
    d4_respondents_comment = db.Column(db.Text())
    d4_number_of_people = db.Column(db.Integer())
    d4_previous_month_data = db.Column(db.Boolean())

    # D5: Dedicated healthcare worker for NCD service provisions
    d5_response = db.Column(YesNo())
    d5_comment = db.Column(db.Text())
    d5_respondents_comment = db.Column(db.Text())

    actions_agreed = db.Column(db.Text())


class IntegrationResponse(SectionResponseMixin, db.Model):
    """
    Section E1-E3: integration of NCD services
    """

    __tablename__ = "visit_integration_responses"

    # E1: Health workers aware of PEN programme purpose
    e1_response = db.Column(YesNo())
    e1_comment = db.Column(db.Text())
    e1_respondents_comment = db.Column(db.Text())

    # E2: Health education on tobacco, alcohol, diet and physical activity
    e2_response = db.Column(YesNo())
    e2_comment = db.Column(db.Text())
    e2_respondents_comment = db.Column(db.Text())

    # E3: Screening for raised blood pressure and raised blood sugar
    e3_response = db.Column(YesNo())
    e3_comment = db.Column(db.Text())
    e3_respondents_comment = db.Column(db.Text())

    actions_agreed = db.Column(db.Text())
