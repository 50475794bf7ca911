from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from sqlalchemy.exc import IntegrityError
import json

from blindclock import db
from blindclock.models import SavedBlindStructure
from blindclock.services.timer.structure import BlindStructureError, parse_blind_structure


blind_structures = Blueprint('blind_structures', __name__)


@blind_structures.route('', methods=['GET'])
@login_required
def list_structures():
    rows = (
        SavedBlindStructure.query.filter_by(owner_id=current_user.id)
        .order_by(SavedBlindStructure.created_at.desc())
        .all()
    )
    return jsonify([row.to_dict() for row in rows])


@blind_structures.route('', methods=['POST'])
@login_required
def save_structure():
    """Save a reusable blind structure template for the current user."""
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    levels = data.get('levels')
    if not name or not levels:
        return jsonify({'error': 'Name and levels are required'}), 400
    try:
        parse_blind_structure(levels)
    except BlindStructureError as exc:
        return jsonify({'error': f'Invalid blind structure: {exc}'}), 400

    structure = SavedBlindStructure(
        owner_id=current_user.id,
        name=name,
        levels=json.dumps(levels),
        enable_bb_antes=bool(data.get('enableBBAntes', False)),
    )
    db.session.add(structure)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({'error': 'A structure with this name already exists'}), 400
    current_app.logger.info(f"[structure-save] owner={current_user.username} name={name} levels={len(levels)}")
    return jsonify({'message': 'Blind structure saved successfully', 'structure': structure.to_dict()}), 201


@blind_structures.route('/<int:structure_id>', methods=['DELETE'])
@login_required
def delete_structure(structure_id):
    structure = SavedBlindStructure.query.filter_by(id=structure_id, owner_id=current_user.id).first()
    if not structure:
        return jsonify({'error': 'Blind structure not found'}), 404
    db.session.delete(structure)
    db.session.commit()
    return jsonify({'message': 'Blind structure deleted successfully'})
