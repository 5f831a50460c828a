# Import all the models, so that Base has them before being
# imported by Alembic
from peopledesk.db.base_class import Base  # noqa

from peopledesk.models.auth_account import AuthAccount  # noqa
from peopledesk.models.employee import Employee  # noqa
from peopledesk.models.department import Department  # noqa
from peopledesk.models.leave_request import LeaveRequest  # noqa
from peopledesk.models.employee_document import EmployeeDocument  # noqa
